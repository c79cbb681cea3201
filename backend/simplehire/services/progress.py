"""Verification progress calculation.

Every purchased track is scored out of four milestones. The overall figure is
completed milestones over ``4 * purchased tracks``, rounded half up. Tracks
that were not purchased are left out of both sides of the ratio.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from simplehire.models.user import ProductId, ReferenceStatus, VerificationStatus

MILESTONES_PER_TRACK = 4
TRACKS = (ProductId.SKILL.value, ProductId.ID_VISA.value, ProductId.REFERENCE.value)

# Milestones reached for each ID+visa status. "pending" counts three because
# upload and review start are recorded by the same transition.
ID_VISA_MILESTONES = {
    VerificationStatus.NOT_STARTED.value: 0,
    VerificationStatus.IN_PROGRESS.value: 1,
    VerificationStatus.PENDING.value: 3,
    VerificationStatus.VERIFIED.value: 4,
}

_EMAIL_SENT_OR_LATER = {
    ReferenceStatus.EMAIL_SENT.value,
    ReferenceStatus.RESPONSE_RECEIVED.value,
    ReferenceStatus.VERIFIED.value,
}
_RESPONSE_OR_LATER = {
    ReferenceStatus.RESPONSE_RECEIVED.value,
    ReferenceStatus.VERIFIED.value,
}


@dataclass
class TrackProgress:
    """Milestone state of one purchased track."""
    product_id: str
    milestones: List[bool]

    @property
    def completed_milestones(self) -> int:
        return sum(1 for reached in self.milestones if reached)

    @property
    def percentage(self) -> int:
        return self.completed_milestones * (100 // MILESTONES_PER_TRACK)

    @property
    def is_complete(self) -> bool:
        return all(self.milestones)

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "milestones": list(self.milestones),
            "completedMilestones": self.completed_milestones,
            "percentage": self.percentage,
            "isComplete": self.is_complete,
        }


@dataclass
class ProgressReport:
    """Progress across every purchased track."""
    tracks: Dict[str, TrackProgress] = field(default_factory=dict)

    @property
    def has_products(self) -> bool:
        return bool(self.tracks)

    @property
    def completed_count(self) -> int:
        return sum(track.completed_milestones for track in self.tracks.values())

    @property
    def overall_percentage(self) -> int:
        if not self.tracks:
            return 0
        total = MILESTONES_PER_TRACK * len(self.tracks)
        return round_half_up(self.completed_count * 100, total)

    def to_dict(self) -> dict:
        return {
            "hasProducts": self.has_products,
            "overallPercentage": self.overall_percentage,
            "completedCount": self.completed_count,
            "totalCount": MILESTONES_PER_TRACK * len(self.tracks),
            "tracks": {product_id: track.to_dict() for product_id, track in self.tracks.items()},
        }


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero for non-negative input."""
    return (2 * numerator + denominator) // (2 * denominator)


def purchased_tracks(purchased_products: Iterable[str]) -> List[str]:
    """Expand a purchased-product set into the tracks it grants, in catalog order."""
    owned = set(purchased_products or ())
    if ProductId.COMBO.value in owned:
        return list(TRACKS)
    return [track for track in TRACKS if track in owned]


def skill_milestones(interview_progress: Optional[Mapping[str, bool]]) -> List[bool]:
    """
    Skill track milestones: voice interview, MCQ, coding, certificate ready.

    ``documentsUploaded`` is not scored.
    """
    progress = interview_progress or {}
    voice = bool(progress.get("voiceInterview"))
    mcq = bool(progress.get("mcqTest"))
    coding = bool(progress.get("codingChallenge"))
    return [voice, mcq, coding, voice and mcq and coding]


def id_visa_milestones(status: Optional[str]) -> List[bool]:
    reached = ID_VISA_MILESTONES.get(status or VerificationStatus.NOT_STARTED.value, 0)
    return [index < reached for index in range(MILESTONES_PER_TRACK)]


def reference_milestones(reference_statuses: Sequence[str]) -> List[bool]:
    """
    Reference track milestones computed from the referee list.

    Args:
        reference_statuses: Status of every reference the candidate added

    Returns:
        [added, any email sent, any response received, all verified]
    """
    statuses = list(reference_statuses)
    added = len(statuses) > 0
    any_sent = any(s in _EMAIL_SENT_OR_LATER for s in statuses)
    any_response = any(s in _RESPONSE_OR_LATER for s in statuses)
    all_verified = added and all(s == ReferenceStatus.VERIFIED.value for s in statuses)
    return [added, any_sent, any_response, all_verified]


def track_progress(
    product_id: str,
    interview_progress: Optional[Mapping[str, bool]] = None,
    id_verification_status: Optional[str] = None,
    reference_statuses: Sequence[str] = (),
) -> TrackProgress:
    if product_id == ProductId.SKILL.value:
        milestones = skill_milestones(interview_progress)
    elif product_id == ProductId.ID_VISA.value:
        milestones = id_visa_milestones(id_verification_status)
    elif product_id == ProductId.REFERENCE.value:
        milestones = reference_milestones(reference_statuses)
    else:
        raise ValueError(f"Unknown verification track: {product_id}")
    return TrackProgress(product_id=product_id, milestones=milestones)


def calculate_progress(
    purchased_products: Iterable[str],
    interview_progress: Optional[Mapping[str, bool]] = None,
    id_verification_status: Optional[str] = None,
    reference_statuses: Sequence[str] = (),
) -> ProgressReport:
    """
    Compute per-track and overall progress for a candidate.

    Args:
        purchased_products: Product ids the user owns, ``combo`` included
        interview_progress: Skill-track step flags
        id_verification_status: Current ID+visa status
        reference_statuses: Status of each reference

    Returns:
        ProgressReport: tracks keyed by product id plus the overall figure
    """
    report = ProgressReport()
    for product_id in purchased_tracks(purchased_products):
        report.tracks[product_id] = track_progress(
            product_id,
            interview_progress=interview_progress,
            id_verification_status=id_verification_status,
            reference_statuses=reference_statuses,
        )
    return report
