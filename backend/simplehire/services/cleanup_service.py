"""Periodic cleanup of stale authentication and session data."""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from simplehire.config import settings
from simplehire.models.database import RefreshTokenDB
from simplehire.services.session_service import session_service

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """Counts of rows removed by one cleanup run."""
    refresh_tokens: int = 0
    sessions: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def delete_expired_refresh_tokens(db: Session) -> int:
    deleted = db.query(RefreshTokenDB).filter(
        RefreshTokenDB.expires_at < datetime.utcnow()
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def run_cleanup(db: Session, max_session_age_seconds: Optional[int] = None) -> CleanupResult:
    """
    Remove expired refresh tokens and idle assessment sessions.

    Meant to be triggered externally, e.g. from cron via ``cleanup_sessions.py``.
    """
    max_age = settings.session_max_age_seconds if max_session_age_seconds is None else max_session_age_seconds
    result = CleanupResult(
        refresh_tokens=delete_expired_refresh_tokens(db),
        sessions=session_service.cleanup_old_sessions(db, max_age),
    )
    logger.info(f"Cleanup finished: {result.to_dict()}")
    return result
