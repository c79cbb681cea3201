"""Rule-based interview proctoring.

A rule is a plain object with ``id``, ``name``, ``enabled`` and a ``check``
callable that takes the frame context and returns a violation or None. The
engine runs every enabled rule; a rule that raises is reported as a
high-severity violation instead of aborting the run.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from simplehire.services.document_verification import (
    FACE_MATCH_THRESHOLD,
    document_verification_service,
)

logger = logging.getLogger(__name__)

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"

FACE_MATCHING_RULE_ID = "face-matching"


@dataclass
class RuleViolation:
    rule_id: str
    severity: str
    message: str
    timestamp: float = field(default_factory=time.time)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "ruleId": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "timestamp": self.timestamp,
            "data": self.data,
        }


RuleCheck = Callable[[Dict[str, Any]], Optional[RuleViolation]]


@dataclass
class ProctoringRule:
    id: str
    name: str
    check: RuleCheck
    enabled: bool = True


@dataclass
class ProctoringResult:
    passed: bool
    violations: List[RuleViolation]
    # Filled by rules that measure similarity, keyed by rule id
    metrics: Dict[str, Any] = field(default_factory=dict)


def face_matching_rule(similarity_threshold: float = FACE_MATCH_THRESHOLD, compare=None) -> ProctoringRule:
    """
    Build the rule comparing the live frame with the reference photo.

    Args:
        similarity_threshold: Minimum similarity percentage to pass
        compare: Face comparison callable, defaults to Rekognition
    """
    compare = compare or document_verification_service.compare_face_images

    def check(context: Dict[str, Any]) -> Optional[RuleViolation]:
        reference = context.get("referenceImageBase64")
        live = context.get("liveImageBase64")
        if not reference or not live:
            return RuleViolation(
                rule_id=FACE_MATCHING_RULE_ID,
                severity=SEVERITY_HIGH,
                message="Missing reference or live image for face verification",
                data={"hasReference": bool(reference), "hasLive": bool(live)},
            )

        result = compare(reference, live)
        context.setdefault("metrics", {})[FACE_MATCHING_RULE_ID] = {"similarity": result.similarity}
        if not result.match or result.similarity < similarity_threshold:
            return RuleViolation(
                rule_id=FACE_MATCHING_RULE_ID,
                severity=SEVERITY_HIGH,
                message=f"Face similarity {result.similarity:.1f}% is below {similarity_threshold:.0f}%",
                data={"similarity": result.similarity, "threshold": similarity_threshold},
            )
        return None

    return ProctoringRule(id=FACE_MATCHING_RULE_ID, name="Face Matching Verification", check=check)


class ProctoringEngine:
    """Holds the active rule set and evaluates frames against it."""

    def __init__(self, rules: Optional[List[ProctoringRule]] = None):
        self.rules: List[ProctoringRule] = list(rules) if rules is not None else [face_matching_rule()]
        logger.info(f"Proctoring engine initialized with {len(self.rules)} rules")

    def add_rule(self, rule: ProctoringRule) -> None:
        self.rules.append(rule)
        logger.info(f"Added rule: {rule.name} ({rule.id})")

    def remove_rule(self, rule_id: str) -> bool:
        before = len(self.rules)
        self.rules = [rule for rule in self.rules if rule.id != rule_id]
        return len(self.rules) < before

    def _find(self, rule_id: str) -> Optional[ProctoringRule]:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    def enable_rule(self, rule_id: str) -> bool:
        rule = self._find(rule_id)
        if rule is None:
            return False
        rule.enabled = True
        return True

    def disable_rule(self, rule_id: str) -> bool:
        rule = self._find(rule_id)
        if rule is None:
            return False
        rule.enabled = False
        return True

    def run_checks(self, context: Dict[str, Any]) -> ProctoringResult:
        """
        Evaluate every enabled rule against ``context``.

        Returns:
            ProctoringResult: passed when no rule reported a violation
        """
        context = dict(context)
        violations: List[RuleViolation] = []
        for rule in [r for r in self.rules if r.enabled]:
            try:
                violation = rule.check(context)
            except Exception as e:
                logger.error(f"Error executing rule {rule.id}: {e}")
                violation = RuleViolation(
                    rule_id=rule.id,
                    severity=SEVERITY_HIGH,
                    message=f"Rule execution error: {e}",
                    data={"error": str(e)},
                )
            if violation is not None:
                logger.warning(f"Rule violation detected: {rule.name} - {violation.message}")
                violations.append(violation)

        passed = not violations
        logger.info(f"Proctoring checks completed: {'PASSED' if passed else 'FAILED'} ({len(violations)} violations)")
        return ProctoringResult(passed=passed, violations=violations, metrics=context.get("metrics", {}))


proctoring_engine = ProctoringEngine()
