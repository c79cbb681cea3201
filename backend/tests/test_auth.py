"""Tests for authentication service and endpoints."""

from datetime import timedelta

import pytest

from conftest import PASSWORD, auth_header, make_user
from simplehire.config import settings
from simplehire.models.database import RefreshTokenDB, UserDataDB
from simplehire.services.auth import TokenError, auth_service, hash_token
from simplehire.services.session_service import session_service
from simplehire.utils.errors import ServiceUnavailable, Unauthorized


class TestAuthenticationService:
    """Test cases for the AuthenticationService class."""

    def test_password_hashing(self):
        """Test password hashing and verification."""
        hashed = auth_service.get_password_hash("Secret123")

        assert hashed != "Secret123"
        assert auth_service.verify_password("Secret123", hashed) is True
        assert auth_service.verify_password("wrong", hashed) is False
        # Google-only accounts have no hash
        assert auth_service.verify_password("Secret123", None) is False

    def test_create_user_adds_empty_verification_record(self, db_session):
        user = make_user(db_session, email="New.Person@Example.com")
        assert user.email == "new.person@example.com"

        user_data = db_session.query(UserDataDB).filter(UserDataDB.user_id == user.id).one()
        assert user_data.purchased_products == []
        assert user_data.interview_progress == {
            "documentsUploaded": False,
            "voiceInterview": False,
            "mcqTest": False,
            "codingChallenge": False,
        }
        assert user_data.id_verification_status == "not-started"
        assert user_data.reference_check_status == "not-started"

    def test_access_token_round_trip(self, user):
        token = auth_service.create_access_token(user)
        payload = auth_service.decode_token(token)
        assert payload["sub"] == user.id
        assert payload["email"] == user.email
        assert payload["type"] == "access"

    def test_expired_token_rejected(self, user):
        token = auth_service.create_access_token(user, expires_delta=timedelta(seconds=-10))
        with pytest.raises(TokenError) as exc_info:
            auth_service.decode_token(token)
        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_refresh_token_not_accepted_as_access_token(self, db_session, user):
        refresh_token = auth_service.create_refresh_token(db_session, user)
        with pytest.raises(TokenError) as exc_info:
            auth_service.decode_token(refresh_token)
        assert exc_info.value.code == "INVALID_TOKEN"
        assert auth_service.verify_token(refresh_token) is None

    def test_refresh_token_stored_hashed(self, db_session, user):
        refresh_token = auth_service.create_refresh_token(db_session, user)
        stored = db_session.query(RefreshTokenDB).filter(RefreshTokenDB.user_id == user.id).one()
        assert stored.token_hash == hash_token(refresh_token)
        assert stored.token_hash != refresh_token

    def test_rotation_invalidates_presented_token(self, db_session, user):
        refresh_token = auth_service.create_refresh_token(db_session, user)
        rotated_user, access_token, new_refresh = auth_service.rotate_refresh_token(db_session, refresh_token)

        assert rotated_user.id == user.id
        assert new_refresh != refresh_token
        assert auth_service.decode_token(access_token)["sub"] == user.id
        with pytest.raises(TokenError):
            auth_service.rotate_refresh_token(db_session, refresh_token)

    def test_authenticate_user(self, db_session, user):
        assert auth_service.authenticate_user(db_session, "CANDIDATE@example.com", PASSWORD).id == user.id
        assert auth_service.authenticate_user(db_session, user.email, "Wrong12345") is None
        assert auth_service.authenticate_user(db_session, "nobody@example.com", PASSWORD) is None

    def test_google_sign_in_requires_configuration(self):
        with pytest.raises(ServiceUnavailable):
            auth_service.verify_google_credential("credential")

    def test_google_sign_in_links_existing_account(self, db_session, user, monkeypatch):
        monkeypatch.setattr(auth_service, "verify_google_credential", lambda credential: {
            "sub": "google-123", "email": user.email, "email_verified": True, "name": "Jane",
        })
        linked = auth_service.login_with_google(db_session, "credential")
        assert linked.id == user.id
        assert linked.google_id == "google-123"
        assert linked.email_verified is True

    def test_google_sign_in_creates_account(self, db_session, monkeypatch):
        monkeypatch.setattr(auth_service, "verify_google_credential", lambda credential: {
            "sub": "google-456", "email": "fresh@example.com", "email_verified": True,
        })
        created = auth_service.login_with_google(db_session, "credential")
        assert created.email == "fresh@example.com"
        assert created.name == "fresh"
        assert created.password_hash is None


class TestAuthEndpoints:
    """Test cases for the /api/auth routes."""

    def test_signup_success(self, client, db_session):
        response = client.post("/api/auth/signup", json={
            "email": "NEW@example.com",
            "password": "Password123",
            "name": "New Candidate",
        })

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["name"] == "New Candidate"
        assert data["token"]
        assert data["refreshToken"]
        # Session cookie mirrors the access token
        assert response.cookies.get(settings.cookie_name) == data["token"]

    def test_signup_duplicate_email(self, client, user):
        response = client.post("/api/auth/signup", json={
            "email": user.email,
            "password": "Password123",
            "name": "Copy Cat",
        })
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_EMAIL"

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_signup_weak_password(self, client, db_session, password):
        response = client.post("/api/auth/signup", json={
            "email": "weak@example.com",
            "password": password,
            "name": "Weak Password",
        })
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "password"

    def test_signup_invalid_email(self, client, db_session):
        response = client.post("/api/auth/signup", json={
            "email": "not-an-email",
            "password": "Password123",
            "name": "Bad Email",
        })
        assert response.status_code == 400

    def test_login_success(self, client, user):
        response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["id"] == user.id
        assert body["data"]["user"]["lastLoginAt"] is not None

    def test_login_opens_login_session(self, client, db_session, user):
        response = client.post(
            "/api/auth/login",
            json={"email": user.email, "password": PASSWORD},
            headers={"User-Agent": "pytest-browser"},
        )
        session_id = response.json()["data"]["sessionId"]

        record = session_service.get_session(db_session, session_id, owner_id=user.id)
        assert record.data["kind"] == "login"
        assert record.data["userAgent"] == "pytest-browser"
        assert session_service.latest_assessment(db_session, user.id) is None

        token = response.json()["data"]["token"]
        client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
        db_session.expire_all()
        assert session_service.get_session(db_session, session_id) is None

    def test_login_wrong_password(self, client, user):
        response = client.post("/api/auth/login", json={"email": user.email, "password": "Wrong12345"})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Invalid email or password",
            "code": "INVALID_CREDENTIALS",
        }

    def test_login_unknown_email_same_error(self, client, db_session):
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_refresh_rotates_tokens(self, client, user):
        login = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD}).json()["data"]

        response = client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
        assert response.status_code == 200
        refreshed = response.json()["data"]
        assert refreshed["refreshToken"] != login["refreshToken"]

        # The old refresh token works only once
        reused = client.post("/api/auth/refresh", json={"refreshToken": login["refreshToken"]})
        assert reused.status_code == 401
        assert reused.json()["code"] == "INVALID_TOKEN"

    def test_me_with_bearer_token(self, client, user, headers):
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["email"] == user.email

    def test_me_with_session_cookie(self, client, user):
        client.cookies.set(settings.cookie_name, auth_service.create_access_token(user))
        response = client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["data"]["id"] == user.id

    def test_me_without_token(self, client, db_session):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_me_with_invalid_token(self, client, db_session):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_me_with_expired_token(self, client, user):
        token = auth_service.create_access_token(user, expires_delta=timedelta(seconds=-10))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_EXPIRED"

    def test_me_for_deleted_user(self, client, db_session, user):
        headers = auth_header(user)
        db_session.delete(user)
        db_session.commit()
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_logout_revokes_token_and_expires_sessions(self, client, db_session, user, headers):
        refresh_token = auth_service.create_refresh_token(db_session, user)
        record = session_service.create_session(db_session, owner_id=user.id, user_id=user.id)

        response = client.post("/api/auth/logout", json={"refreshToken": refresh_token}, headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"

        db_session.expire_all()
        assert db_session.query(RefreshTokenDB).filter(RefreshTokenDB.user_id == user.id).count() == 0
        assert session_service.get_session(db_session, record.session_id) is None

    def test_logout_without_body(self, client, user, headers):
        response = client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200

    def test_logout_all(self, client, db_session, user, headers):
        auth_service.create_refresh_token(db_session, user)
        auth_service.create_refresh_token(db_session, user)

        response = client.post("/api/auth/logout-all", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["revokedTokens"] == 2

    def test_google_not_configured(self, client, db_session):
        response = client.post("/api/auth/google", json={"credential": "abc"})
        assert response.status_code == 503
        assert response.json()["code"] == "GOOGLE_NOT_CONFIGURED"

    def test_google_invalid_token(self, client, db_session, monkeypatch):
        def reject(credential):
            raise Unauthorized("Invalid Google token", code="INVALID_TOKEN")

        monkeypatch.setattr(auth_service, "verify_google_credential", reject)
        response = client.post("/api/auth/google", json={"credential": "abc"})
        assert response.status_code == 401
