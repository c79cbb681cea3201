"""Interview proctoring API endpoints for Simplehire."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.database import ProctoringEventDB, UserDB
from simplehire.models.verification import ProctoringCheckRequest
from simplehire.services.audit_service import SecurityEventType, audit_service
from simplehire.services.document_verification import decode_image
from simplehire.services.proctoring import FACE_MATCHING_RULE_ID, proctoring_engine
from simplehire.utils.errors import ValidationFailed
from simplehire.utils.responses import success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proctoring", tags=["proctoring"])

EVENT_INITIAL_VERIFICATION = "initial_verification"
EVENT_MONITORING = "monitoring"


def run_proctoring_check(
    db: Session,
    request: Request,
    user: UserDB,
    check_request: ProctoringCheckRequest,
    event_type: str
) -> dict:
    """
    Run the rule engine on a frame pair and record the outcome.

    Raises:
        ValidationFailed: when either image is missing or not valid base64
    """
    if not check_request.referenceImageBase64 or not check_request.liveImageBase64:
        raise ValidationFailed("Reference image and live image are required")
    # Reject malformed frames before any rule runs
    decode_image(check_request.referenceImageBase64)
    decode_image(check_request.liveImageBase64)

    result = proctoring_engine.run_checks({
        "referenceImageBase64": check_request.referenceImageBase64,
        "liveImageBase64": check_request.liveImageBase64,
        "userId": user.id,
        "interviewId": check_request.interviewId,
    })
    similarity = result.metrics.get(FACE_MATCHING_RULE_ID, {}).get("similarity")
    violations = [v.to_dict() for v in result.violations]

    db.add(ProctoringEventDB(
        session_id=check_request.interviewId,
        user_id=user.id,
        event_type=event_type,
        similarity=similarity,
        alert_triggered=not result.passed,
        violations=violations or None,
    ))
    db.commit()

    if not result.passed:
        audit_service.log_security_event(
            event_type=SecurityEventType.PROCTORING_ALERT,
            severity="MEDIUM",
            request=request,
            details={"interviewId": check_request.interviewId, "violations": len(violations)},
            user_id=user.id
        )
    logger.info(
        f"Proctoring {event_type} {'passed' if result.passed else 'failed'} for interview {check_request.interviewId}"
    )
    return {"passed": result.passed, "violations": violations, "similarity": similarity}


@router.post("/verify-identity")
async def verify_identity(
    check_request: ProctoringCheckRequest,
    request: Request,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Compare the live capture with the reference photo before the interview starts."""
    return success(run_proctoring_check(db, request, current_user, check_request, EVENT_INITIAL_VERIFICATION))


@router.post("/monitor")
async def monitor_session(
    check_request: ProctoringCheckRequest,
    request: Request,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Periodic check during the interview."""
    return success(run_proctoring_check(db, request, current_user, check_request, EVENT_MONITORING))
