"""Assessment session API endpoints for Simplehire."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.models.database import AssessmentSessionDB, UserDB
from simplehire.models.verification import ExpireSessionRequest, SessionIdRequest
from simplehire.services.session_service import session_service
from simplehire.utils.errors import NotFound, ValidationFailed
from simplehire.utils.responses import success

router = APIRouter(prefix="/session", tags=["sessions"])


def session_to_dict(record: AssessmentSessionDB) -> dict:
    return {
        "sessionId": record.session_id,
        "status": record.status,
        "kind": (record.data or {}).get("kind"),
        "lastActivity": record.last_activity,
        "createdAt": record.created_at,
    }


def _require_session_id(session_id) -> str:
    if not session_id:
        raise ValidationFailed("Session ID is required", code="MISSING_SESSION_ID")
    return session_id


@router.post("/heartbeat")
async def heartbeat(heartbeat_request: SessionIdRequest, db: Session = Depends(get_db)):
    """Keep an active session alive."""
    session_id = _require_session_id(heartbeat_request.sessionId)
    if not session_service.update_session_activity(db, session_id):
        raise NotFound("Session not found", code="SESSION_NOT_FOUND")
    return success(message="Session heartbeat recorded")


@router.post("/expire")
async def expire_session(expire_request: ExpireSessionRequest, db: Session = Depends(get_db)):
    session_id = _require_session_id(expire_request.sessionId)
    if not session_service.expire_session(db, session_id, expire_request.reason):
        raise NotFound("Session not found", code="SESSION_NOT_FOUND")
    return success(message="Session expired")


@router.get("/user-sessions")
async def user_sessions(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Active sessions of the current user, most recent first."""
    sessions = session_service.get_user_sessions(db, current_user.id)
    return success([session_to_dict(s) for s in sessions])


@router.get("/{session_id}/status")
async def session_status(session_id: str, db: Session = Depends(get_db)):
    record = session_service.get_session(db, session_id)
    if record is None:
        raise NotFound("Session not found or expired", code="SESSION_NOT_FOUND")
    return success(session_to_dict(record))
