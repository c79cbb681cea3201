"""Authentication API endpoints for Simplehire."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from simplehire.config import settings
from simplehire.database import get_db
from simplehire.middleware.auth import get_current_user
from simplehire.middleware.security import login_rate_limiter
from simplehire.models.auth import (
    AuthPayload,
    GoogleLoginRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    SignupRequest,
)
from simplehire.models.database import UserDB
from simplehire.services.audit_service import AuditEventType, audit_service, client_ip
from simplehire.services.auth import auth_service
from simplehire.services.session_service import SESSION_KIND_LOGIN, session_service
from simplehire.utils.errors import Conflict, Unauthorized
from simplehire.utils.responses import success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.cookie_name, httponly=True, secure=settings.cookie_secure, samesite="lax")


def _auth_payload(db: Session, user: UserDB, request: Request, response: Response) -> dict:
    """Issue tokens, set the cookie and open a ``login`` session for the new sign-in."""
    access_token, refresh_token = auth_service.issue_tokens(db, user)
    set_session_cookie(response, access_token)
    login_session = session_service.create_session(
        db,
        owner_id=user.id,
        user_id=user.id,
        data={"ipAddress": client_ip(request), "userAgent": request.headers.get("User-Agent", "unknown")},
        kind=SESSION_KIND_LOGIN,
    )
    payload = AuthPayload(
        user=auth_service.to_profile(user),
        token=access_token,
        refreshToken=refresh_token,
        sessionId=login_session.session_id,
    )
    return payload.model_dump(mode="json")


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    signup_request: SignupRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Register a new account.

    Returns:
        dict: the profile with an access token and a refresh token

    Raises:
        Conflict: DUPLICATE_EMAIL if the email is already registered
    """
    if auth_service.get_user_by_email(db, signup_request.email):
        raise Conflict("An account with this email already exists", code="DUPLICATE_EMAIL")

    user = auth_service.create_user(
        db,
        email=signup_request.email,
        name=signup_request.name,
        password=signup_request.password,
    )
    auth_service.update_last_login(db, user)
    audit_service.log_audit_event(
        event_type=AuditEventType.USER_REGISTRATION,
        request=request,
        user_id=user.id,
        user_email=user.email,
    )
    logger.info(f"Registered user {user.id}")
    return success(_auth_payload(db, user, request, response))


@router.post("/login", dependencies=[Depends(login_rate_limiter)])
async def login(
    login_request: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Authenticate with email and password.

    Raises:
        Unauthorized: INVALID_CREDENTIALS on a wrong email or password
    """
    user = auth_service.authenticate_user(db, login_request.email, login_request.password)
    if not user:
        audit_service.log_authentication_event(
            request, login_request.email, success=False, failure_reason="invalid_credentials"
        )
        raise Unauthorized("Invalid email or password", code="INVALID_CREDENTIALS")

    auth_service.ensure_user_data(db, user)
    auth_service.update_last_login(db, user)
    audit_service.log_authentication_event(request, user.email, success=True, user_id=user.id)
    return success(_auth_payload(db, user, request, response))


@router.post("/google", dependencies=[Depends(login_rate_limiter)])
async def google_login(
    google_request: GoogleLoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """Sign in with a Google ID token, creating the account on first use."""
    user = auth_service.login_with_google(db, google_request.credential)
    auth_service.update_last_login(db, user)
    audit_service.log_authentication_event(request, user.email, success=True, user_id=user.id)
    return success(_auth_payload(db, user, request, response))


@router.post("/refresh")
async def refresh(
    refresh_request: RefreshRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Exchange a refresh token for a new token pair; the old refresh token stops working."""
    user, access_token, refresh_token = auth_service.rotate_refresh_token(db, refresh_request.refreshToken)
    set_session_cookie(response, access_token)
    payload = AuthPayload(user=auth_service.to_profile(user), token=access_token, refreshToken=refresh_token)
    return success(payload.model_dump(mode="json"))


@router.post("/logout")
async def logout(
    response: Response,
    logout_request: Optional[LogoutRequest] = None,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Sign out.

    Deletes the given refresh token, or all of the user's tokens when none is
    sent, and expires the user's active sessions.
    """
    refresh_token = logout_request.refreshToken if logout_request else None
    auth_service.revoke_refresh_tokens(db, current_user.id, refresh_token)
    session_service.expire_user_sessions(db, current_user.id, "User logged out")
    clear_session_cookie(response)
    return success(message="Logged out successfully")


@router.post("/logout-all")
async def logout_all(
    response: Response,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Sign out of every device."""
    revoked = auth_service.revoke_refresh_tokens(db, current_user.id)
    session_service.expire_user_sessions(db, current_user.id, "User logged out of all devices")
    clear_session_cookie(response)
    return success({"revokedTokens": revoked}, message="Logged out of all devices")


@router.get("/me")
async def get_me(current_user: UserDB = Depends(get_current_user)):
    return success(auth_service.to_profile(current_user).model_dump(mode="json"))
