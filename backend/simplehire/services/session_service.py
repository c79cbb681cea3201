"""Assessment session lifecycle.

A session is ``active`` until it is expired explicitly or removed by the idle
sweep. Expired rows are kept but behave as missing for every lookup. Lookups
report "not found" as ``None``/``False``; a database failure is logged and
raised as :class:`SessionStorageError` so the two are never confused.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from simplehire.models.database import AssessmentSessionDB
from simplehire.models.user import SessionStatus
from simplehire.utils.errors import ServiceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_REASON = "Manual expiry"
DEFAULT_MAX_AGE_SECONDS = 3600

SESSION_KIND_ASSESSMENT = "assessment"
SESSION_KIND_LOGIN = "login"


class SessionStorageError(ServiceUnavailable):
    """The session store could not be read or written."""

    def __init__(self, message: str = "Session storage unavailable"):
        super().__init__(message, code="SESSION_STORAGE_ERROR")


class SessionService:
    """Create, read and expire assessment sessions."""

    def _fail(self, db: Session, operation: str, error: SQLAlchemyError):
        db.rollback()
        logger.error(f"Session {operation} failed: {error}")
        raise SessionStorageError() from error

    def _active(self, db: Session, session_id: str) -> Optional[AssessmentSessionDB]:
        return db.query(AssessmentSessionDB).filter(
            AssessmentSessionDB.session_id == session_id,
            AssessmentSessionDB.status == SessionStatus.ACTIVE.value,
        ).first()

    def create_session(
        self,
        db: Session,
        owner_id: str,
        data: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        kind: str = SESSION_KIND_ASSESSMENT,
    ) -> AssessmentSessionDB:
        """
        Start a new active session.

        Args:
            db: Database session
            owner_id: Party that owns the session
            data: Initial payload
            user_id: Authenticated user, when known
            kind: Discriminator stored as ``data["kind"]``

        Returns:
            AssessmentSessionDB: The persisted session
        """
        payload = dict(data or {})
        payload["kind"] = kind
        now = datetime.utcnow()
        record = AssessmentSessionDB(
            owner_id=owner_id,
            user_id=user_id,
            status=SessionStatus.ACTIVE.value,
            data=payload,
            last_activity=now,
            created_at=now,
        )
        try:
            db.add(record)
            db.commit()
            db.refresh(record)
        except SQLAlchemyError as e:
            self._fail(db, "create", e)
        logger.info(f"Created {kind} session {record.session_id} for owner {owner_id}")
        return record

    def get_session(self, db: Session, session_id: str, owner_id: Optional[str] = None) -> Optional[AssessmentSessionDB]:
        """
        Look up an active session.

        Args:
            db: Database session
            session_id: Public session id
            owner_id: When given, must match the owner or the user of the session

        Returns:
            The session, or None when it is missing, expired or owned by someone else
        """
        try:
            query = db.query(AssessmentSessionDB).filter(
                AssessmentSessionDB.session_id == session_id,
                AssessmentSessionDB.status == SessionStatus.ACTIVE.value,
            )
            if owner_id:
                query = query.filter(or_(
                    AssessmentSessionDB.owner_id == owner_id,
                    AssessmentSessionDB.user_id == owner_id,
                ))
            return query.first()
        except SQLAlchemyError as e:
            self._fail(db, "lookup", e)

    def update_session(self, db: Session, session_id: str, updates: Dict[str, Any],
                       owner_id: Optional[str] = None) -> Optional[AssessmentSessionDB]:
        """Merge ``updates`` into the session payload and mark it active now."""
        record = self.get_session(db, session_id, owner_id)
        if record is None:
            return None
        merged = dict(record.data or {})
        merged.update(updates)
        # JSON columns only persist on reassignment
        record.data = merged
        record.last_activity = datetime.utcnow()
        try:
            db.commit()
            db.refresh(record)
        except SQLAlchemyError as e:
            self._fail(db, "update", e)
        return record

    def update_session_activity(self, db: Session, session_id: str) -> bool:
        try:
            record = self._active(db, session_id)
            if record is None:
                return False
            record.last_activity = datetime.utcnow()
            db.commit()
            return True
        except SQLAlchemyError as e:
            self._fail(db, "heartbeat", e)

    def expire_session(self, db: Session, session_id: str, reason: Optional[str] = None) -> bool:
        """Move an active session to expired, recording why and when."""
        try:
            record = self._active(db, session_id)
            if record is None:
                return False
            record.status = SessionStatus.EXPIRED.value
            record.expiry_reason = reason or DEFAULT_EXPIRY_REASON
            record.expired_at = datetime.utcnow()
            db.commit()
        except SQLAlchemyError as e:
            self._fail(db, "expire", e)
        logger.info(f"Expired session {session_id}: {reason or DEFAULT_EXPIRY_REASON}")
        return True

    def expire_user_sessions(self, db: Session, user_id: str, reason: str) -> int:
        """Expire every active session belonging to a user."""
        try:
            expired = db.query(AssessmentSessionDB).filter(
                AssessmentSessionDB.user_id == user_id,
                AssessmentSessionDB.status == SessionStatus.ACTIVE.value,
            ).update(
                {
                    AssessmentSessionDB.status: SessionStatus.EXPIRED.value,
                    AssessmentSessionDB.expiry_reason: reason,
                    AssessmentSessionDB.expired_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
            db.commit()
            return expired
        except SQLAlchemyError as e:
            self._fail(db, "bulk expire", e)

    def delete_session(self, db: Session, session_id: str) -> bool:
        try:
            deleted = db.query(AssessmentSessionDB).filter(
                AssessmentSessionDB.session_id == session_id
            ).delete(synchronize_session=False)
            db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            self._fail(db, "delete", e)

    def cleanup_old_sessions(self, db: Session, max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS) -> int:
        """
        Delete active sessions idle for longer than ``max_age_seconds``.

        Expired sessions are never touched, so repeated calls are safe.

        Returns:
            int: Number of sessions deleted
        """
        cutoff = datetime.utcnow() - timedelta(seconds=max_age_seconds)
        try:
            deleted = db.query(AssessmentSessionDB).filter(
                AssessmentSessionDB.status == SessionStatus.ACTIVE.value,
                AssessmentSessionDB.last_activity < cutoff,
            ).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            self._fail(db, "cleanup", e)
        if deleted:
            logger.info(f"Cleaned up {deleted} idle sessions")
        return deleted

    def get_user_sessions(self, db: Session, user_id: str) -> List[AssessmentSessionDB]:
        """Active sessions of a user, most recently active first."""
        try:
            return db.query(AssessmentSessionDB).filter(
                AssessmentSessionDB.user_id == user_id,
                AssessmentSessionDB.status == SessionStatus.ACTIVE.value,
            ).order_by(AssessmentSessionDB.last_activity.desc()).all()
        except SQLAlchemyError as e:
            self._fail(db, "listing", e)

    def latest_assessment(self, db: Session, user_id: str) -> Optional[AssessmentSessionDB]:
        """Most recent active assessment session of a user."""
        sessions = self.get_user_sessions(db, user_id)
        for record in sessions:
            if (record.data or {}).get("kind") == SESSION_KIND_ASSESSMENT:
                return record
        return None


session_service = SessionService()
