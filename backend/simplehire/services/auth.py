"""Authentication service for Simplehire."""

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from simplehire.config import settings
from simplehire.models.database import RefreshTokenDB, UserDataDB, UserDB
from simplehire.models.user import UserProfile, default_interview_progress
from simplehire.utils.errors import AppError, Unauthorized, ServiceUnavailable

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Unauthorized):
    """Raised when a bearer or refresh token cannot be accepted."""


def hash_token(token: str) -> str:
    """SHA-256 of a refresh token; only the hash is persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthenticationService:
    """Service for password handling, JWT tokens and refresh-token rotation."""

    def __init__(self):
        """Initialize authentication service with password context."""
        self.pwd_context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto"
        )

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a plain password against its hash.

        Args:
            plain_password: The plain text password
            hashed_password: The hashed password from database

        Returns:
            bool: True if password matches, False otherwise
        """
        if not hashed_password:
            return False
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def _encode(self, user: UserDB, token_type: str, expires_delta: timedelta, secret: str) -> str:
        now = datetime.utcnow()
        payload = {
            "sub": user.id,
            "email": user.email,
            "type": token_type,
            "exp": now + expires_delta,
            # Microsecond timestamp keeps tokens issued in the same second distinct
            "iat": now.timestamp(),
        }
        return jwt.encode(payload, secret, algorithm=settings.algorithm)

    def create_access_token(self, user: UserDB, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed access token.

        Args:
            user: The token subject
            expires_delta: Optional lifetime override

        Returns:
            str: The encoded JWT
        """
        delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
        return self._encode(user, ACCESS_TOKEN_TYPE, delta, settings.jwt_secret)

    def create_refresh_token(self, db: Session, user: UserDB) -> str:
        """Create a refresh token and store its hash."""
        delta = timedelta(days=settings.refresh_token_expire_days)
        token = self._encode(user, REFRESH_TOKEN_TYPE, delta, settings.refresh_token_secret)
        db.add(RefreshTokenDB(
            token_hash=hash_token(token),
            user_id=user.id,
            expires_at=datetime.utcnow() + delta,
        ))
        db.commit()
        return token

    def issue_tokens(self, db: Session, user: UserDB) -> Tuple[str, str]:
        return self.create_access_token(user), self.create_refresh_token(db, user)

    def decode_token(self, token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict:
        """
        Verify and decode a JWT.

        Args:
            token: The encoded token
            token_type: Expected ``type`` claim

        Returns:
            dict: The decoded payload

        Raises:
            TokenError: TOKEN_EXPIRED for an expired token, INVALID_TOKEN otherwise
        """
        secret = settings.jwt_secret if token_type == ACCESS_TOKEN_TYPE else settings.refresh_token_secret
        try:
            payload = jwt.decode(token, secret, algorithms=[settings.algorithm])
        except ExpiredSignatureError:
            raise TokenError("Token has expired", code="TOKEN_EXPIRED")
        except JWTError:
            raise TokenError("Invalid token", code="INVALID_TOKEN")
        if payload.get("type") != token_type or not payload.get("sub"):
            raise TokenError("Invalid token", code="INVALID_TOKEN")
        return payload

    def verify_token(self, token: str) -> Optional[dict]:
        """Decode an access token, returning None instead of raising."""
        try:
            return self.decode_token(token)
        except TokenError:
            return None

    def rotate_refresh_token(self, db: Session, refresh_token: str) -> Tuple[UserDB, str, str]:
        """
        Exchange a refresh token for a new access/refresh pair.

        The presented token is deleted, so each refresh token works once.
        """
        payload = self.decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        stored = db.query(RefreshTokenDB).filter(
            RefreshTokenDB.token_hash == hash_token(refresh_token),
            RefreshTokenDB.expires_at > datetime.utcnow(),
        ).first()
        if stored is None:
            raise TokenError("Invalid or expired refresh token", code="INVALID_TOKEN")

        user = self.get_user_by_id(db, payload["sub"])
        if user is None:
            raise TokenError("Invalid token", code="INVALID_TOKEN")

        db.delete(stored)
        db.commit()
        access_token, new_refresh = self.issue_tokens(db, user)
        return user, access_token, new_refresh

    def revoke_refresh_tokens(self, db: Session, user_id: str, refresh_token: Optional[str] = None) -> int:
        """Delete one refresh token, or every token of the user when none is given."""
        query = db.query(RefreshTokenDB).filter(RefreshTokenDB.user_id == user_id)
        if refresh_token:
            query = query.filter(RefreshTokenDB.token_hash == hash_token(refresh_token))
        deleted = query.delete(synchronize_session=False)
        db.commit()
        return deleted

    def authenticate_user(self, db: Session, email: str, password: str) -> Optional[UserDB]:
        """
        Authenticate a user with email and password.

        Returns:
            UserDB: The authenticated user if valid, None otherwise
        """
        user = db.query(UserDB).filter(UserDB.email == email.lower()).first()
        if not user:
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

    def get_user_by_id(self, db: Session, user_id: str) -> Optional[UserDB]:
        return db.query(UserDB).filter(UserDB.id == user_id).first()

    def get_user_by_email(self, db: Session, email: str) -> Optional[UserDB]:
        return db.query(UserDB).filter(UserDB.email == email.lower()).first()

    def ensure_user_data(self, db: Session, user: UserDB) -> UserDataDB:
        """Return the user's verification record, creating the default one if missing."""
        user_data = db.query(UserDataDB).filter(UserDataDB.user_id == user.id).first()
        if user_data is None:
            user_data = UserDataDB(
                user_id=user.id,
                purchased_products=[],
                interview_progress=default_interview_progress(),
            )
            db.add(user_data)
            db.commit()
            db.refresh(user_data)
        return user_data

    def create_user(self, db: Session, email: str, name: str, password: Optional[str] = None,
                    google_id: Optional[str] = None, email_verified: bool = False) -> UserDB:
        """Create a user together with an empty verification record."""
        user = UserDB(
            email=email.lower(),
            name=name,
            password_hash=self.get_password_hash(password) if password else None,
            google_id=google_id,
            email_verified=email_verified,
        )
        db.add(user)
        db.flush()
        db.add(UserDataDB(
            user_id=user.id,
            purchased_products=[],
            interview_progress=default_interview_progress(),
        ))
        db.commit()
        db.refresh(user)
        return user

    def update_last_login(self, db: Session, user: UserDB) -> None:
        user.last_login_at = datetime.utcnow()
        db.commit()
        db.refresh(user)

    def verify_google_credential(self, credential: str) -> dict:
        """
        Verify a Google ID token against the configured client id.

        Returns:
            dict: The verified token claims

        Raises:
            AppError: 503 when Google sign-in is not configured, 401 on a bad token
        """
        if not settings.google_client_id:
            raise ServiceUnavailable("Google sign-in is not configured", code="GOOGLE_NOT_CONFIGURED")
        try:
            claims = google_id_token.verify_oauth2_token(
                credential, google_requests.Request(), settings.google_client_id
            )
        except ValueError as e:
            logger.warning(f"Google token verification failed: {e}")
            raise Unauthorized("Invalid Google token", code="INVALID_TOKEN")
        if not claims.get("email"):
            raise AppError("Google account has no email address", 400, "VALIDATION_ERROR")
        return claims

    def login_with_google(self, db: Session, credential: str) -> UserDB:
        """Find or create the user behind a Google credential and link the account."""
        claims = self.verify_google_credential(credential)
        google_id = claims["sub"]
        email = claims["email"].lower()

        user = db.query(UserDB).filter(UserDB.google_id == google_id).first()
        if user is None:
            user = self.get_user_by_email(db, email)
            if user is None:
                user = self.create_user(
                    db,
                    email=email,
                    name=claims.get("name") or email.split("@")[0],
                    google_id=google_id,
                    email_verified=bool(claims.get("email_verified")),
                )
                logger.info(f"Created user {user.id} from Google sign-in")
            else:
                user.google_id = google_id
                user.email_verified = user.email_verified or bool(claims.get("email_verified"))
                db.commit()
        self.ensure_user_data(db, user)
        return user

    def to_profile(self, user: UserDB) -> UserProfile:
        return UserProfile(
            id=user.id,
            email=user.email,
            name=user.name,
            emailVerified=bool(user.email_verified),
            createdAt=user.created_at,
            lastLoginAt=user.last_login_at,
        )


# Global authentication service instance
auth_service = AuthenticationService()
