"""Tests for assessment sessions and the cleanup job."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import auth_header
from simplehire.models.database import AssessmentSessionDB, RefreshTokenDB
from simplehire.services.cleanup_service import run_cleanup
from simplehire.services.session_service import SessionStorageError, session_service


def _age(db, record, seconds):
    record.last_activity = datetime.utcnow() - timedelta(seconds=seconds)
    db.commit()


class TestSessionService:

    def test_create_and_get(self, db_session, user):
        record = session_service.create_session(db_session, owner_id=user.id, user_id=user.id, data={"step": 1})

        found = session_service.get_session(db_session, record.session_id)
        assert found.id == record.id
        assert found.status == "active"
        assert found.data == {"step": 1, "kind": "assessment"}

    def test_get_checks_owner(self, db_session, user, other_user):
        record = session_service.create_session(db_session, owner_id=user.id, user_id=user.id)
        assert session_service.get_session(db_session, record.session_id, owner_id=user.id) is not None
        assert session_service.get_session(db_session, record.session_id, owner_id=other_user.id) is None

    def test_update_merges_payload(self, db_session, user):
        record = session_service.create_session(db_session, owner_id=user.id, data={"a": 1})
        updated = session_service.update_session(db_session, record.session_id, {"b": 2})
        assert updated.data == {"a": 1, "b": 2, "kind": "assessment"}

    def test_expired_session_behaves_as_missing(self, db_session, user):
        record = session_service.create_session(db_session, owner_id=user.id)

        assert session_service.expire_session(db_session, record.session_id, "Tab closed") is True
        assert session_service.get_session(db_session, record.session_id) is None
        assert session_service.update_session(db_session, record.session_id, {"x": 1}) is None
        assert session_service.update_session_activity(db_session, record.session_id) is False
        # A second expiry finds nothing to expire
        assert session_service.expire_session(db_session, record.session_id) is False

        stored = db_session.query(AssessmentSessionDB).filter(AssessmentSessionDB.id == record.id).one()
        assert stored.expiry_reason == "Tab closed"
        assert stored.expired_at is not None

    def test_default_expiry_reason(self, db_session, user):
        record = session_service.create_session(db_session, owner_id=user.id)
        session_service.expire_session(db_session, record.session_id)
        db_session.refresh(record)
        assert record.expiry_reason == "Manual expiry"

    def test_unknown_session(self, db_session):
        assert session_service.get_session(db_session, "missing") is None
        assert session_service.update_session_activity(db_session, "missing") is False
        assert session_service.delete_session(db_session, "missing") is False

    def test_user_sessions_most_recent_first(self, db_session, user):
        older = session_service.create_session(db_session, owner_id=user.id, user_id=user.id)
        newer = session_service.create_session(db_session, owner_id=user.id, user_id=user.id)
        _age(db_session, older, 120)

        sessions = session_service.get_user_sessions(db_session, user.id)
        assert [s.session_id for s in sessions] == [newer.session_id, older.session_id]

    def test_expire_user_sessions(self, db_session, user):
        session_service.create_session(db_session, owner_id=user.id, user_id=user.id)
        session_service.create_session(db_session, owner_id=user.id, user_id=user.id)
        assert session_service.expire_user_sessions(db_session, user.id, "User logged out") == 2
        assert session_service.get_user_sessions(db_session, user.id) == []

    def test_cleanup_removes_only_idle_active_sessions(self, db_session, user):
        idle = session_service.create_session(db_session, owner_id=user.id)
        fresh = session_service.create_session(db_session, owner_id=user.id)
        expired = session_service.create_session(db_session, owner_id=user.id)
        _age(db_session, idle, 7200)
        session_service.expire_session(db_session, expired.session_id)
        _age(db_session, expired, 7200)

        assert session_service.cleanup_old_sessions(db_session, 3600) == 1
        assert session_service.get_session(db_session, fresh.session_id) is not None
        remaining = {s.session_id for s in db_session.query(AssessmentSessionDB).all()}
        assert remaining == {fresh.session_id, expired.session_id}
        # Nothing left to clean
        assert session_service.cleanup_old_sessions(db_session, 3600) == 0

    def test_storage_failure_is_not_reported_as_missing(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        with pytest.raises(SessionStorageError):
            session_service.get_session(db, "any")
        db.rollback.assert_called_once()


class TestCleanupJob:

    def test_run_cleanup(self, db_session, user):
        db_session.add(RefreshTokenDB(
            token_hash="stale",
            user_id=user.id,
            expires_at=datetime.utcnow() - timedelta(days=1),
        ))
        db_session.add(RefreshTokenDB(
            token_hash="valid",
            user_id=user.id,
            expires_at=datetime.utcnow() + timedelta(days=1),
        ))
        db_session.commit()
        idle = session_service.create_session(db_session, owner_id=user.id)
        _age(db_session, idle, 600)

        result = run_cleanup(db_session, max_session_age_seconds=300)
        assert result.to_dict() == {"refresh_tokens": 1, "sessions": 1}
        assert [t.token_hash for t in db_session.query(RefreshTokenDB).all()] == ["valid"]

    def test_zero_max_age_is_not_the_default(self, db_session, user):
        recent = session_service.create_session(db_session, owner_id=user.id)
        _age(db_session, recent, 10)

        # The default age (one hour) would keep this session
        assert run_cleanup(db_session).sessions == 0
        assert run_cleanup(db_session, max_session_age_seconds=0).sessions == 1
        db_session.expire_all()
        assert session_service.get_session(db_session, recent.session_id) is None


class TestSessionEndpoints:

    def test_heartbeat(self, client, db_session, user):
        record = session_service.create_session(db_session, owner_id=user.id)
        _age(db_session, record, 300)

        response = client.post("/api/session/heartbeat", json={"sessionId": record.session_id})
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Session heartbeat recorded"}

        db_session.expire_all()
        refreshed = session_service.get_session(db_session, record.session_id)
        assert refreshed.last_activity > datetime.utcnow() - timedelta(seconds=60)

    def test_heartbeat_requires_session_id(self, client, db_session):
        response = client.post("/api/session/heartbeat", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_SESSION_ID"

    def test_heartbeat_unknown_session(self, client, db_session):
        response = client.post("/api/session/heartbeat", json={"sessionId": "nope"})
        assert response.status_code == 404
        assert response.json()["code"] == "SESSION_NOT_FOUND"

    def test_expire_then_status(self, client, db_session, user):
        record = session_service.create_session(db_session, owner_id=user.id)

        status_response = client.get(f"/api/session/{record.session_id}/status")
        assert status_response.status_code == 200
        assert status_response.json()["data"]["status"] == "active"
        assert status_response.json()["data"]["kind"] == "assessment"

        expire_response = client.post(
            "/api/session/expire", json={"sessionId": record.session_id, "reason": "Left interview"}
        )
        assert expire_response.status_code == 200

        assert client.get(f"/api/session/{record.session_id}/status").status_code == 404
        assert client.post("/api/session/expire", json={"sessionId": record.session_id}).status_code == 404

    def test_user_sessions(self, client, db_session, user, other_user):
        mine = session_service.create_session(db_session, owner_id=user.id, user_id=user.id)
        session_service.create_session(db_session, owner_id=other_user.id, user_id=other_user.id)

        response = client.get("/api/session/user-sessions", headers=auth_header(user))
        assert response.status_code == 200
        assert [s["sessionId"] for s in response.json()["data"]] == [mine.session_id]

    def test_user_sessions_requires_auth(self, client, db_session):
        assert client.get("/api/session/user-sessions").status_code == 401
