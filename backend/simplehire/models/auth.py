"""Authentication models for Simplehire."""

from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
import re

from .user import UserProfile


def _check_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError('Password must be at least 8 characters long')
    if not re.search(r'[A-Z]', v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'\d', v):
        raise ValueError('Password must contain at least one digit')
    return v


class LoginRequest(BaseModel):
    """Login request model."""
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class SignupRequest(BaseModel):
    """Signup request model."""
    email: EmailStr
    password: str
    name: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        return _check_password_strength(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is present and has reasonable length."""
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be at least 2 characters')
        if len(v) > 100:
            raise ValueError('Name cannot exceed 100 characters')
        return v


class GoogleLoginRequest(BaseModel):
    """Google sign-in with an ID token from the client SDK."""
    credential: str


class RefreshRequest(BaseModel):
    refreshToken: str


class LogoutRequest(BaseModel):
    refreshToken: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    """Password change for an authenticated user."""
    currentPassword: str
    newPassword: str

    @field_validator('newPassword')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class AuthPayload(BaseModel):
    """Tokens returned after signup, login or refresh."""
    user: UserProfile
    token: str
    refreshToken: str
    sessionId: Optional[str] = None
