"""Authentication dependencies for Simplehire routes."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from simplehire.config import settings
from simplehire.database import get_db
from simplehire.models.database import UserDB
from simplehire.services.auth import TokenError, auth_service
from simplehire.utils.errors import Unauthorized


# Bearer is optional here; the session cookie is the fallback
security = HTTPBearer(auto_error=False)


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer token if present, otherwise the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.cookie_name)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> UserDB:
    """
    Get the current authenticated user from the bearer token or session cookie.

    Args:
        request: Incoming request
        credentials: HTTP Bearer credentials, if sent
        db: Database session

    Returns:
        UserDB: The authenticated user

    Raises:
        Unauthorized: UNAUTHORIZED without a token, TOKEN_EXPIRED or
            INVALID_TOKEN for a token that cannot be accepted
    """
    token = extract_token(request, credentials)
    if not token:
        raise Unauthorized("Authentication required")

    payload = auth_service.decode_token(token)
    user = auth_service.get_user_by_id(db, payload["sub"])
    if user is None:
        raise TokenError("User no longer exists", code="INVALID_TOKEN")

    # Plain values; the ORM row is detached once the request session closes
    request.state.user_id = user.id
    request.state.user_email = user.email
    return user

