"""User and verification-record models for Simplehire."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime
from enum import Enum


class ProductId(str, Enum):
    """Purchasable product identifiers."""
    SKILL = "skill"
    ID_VISA = "id-visa"
    REFERENCE = "reference"
    COMBO = "combo"


class VerificationStatus(str, Enum):
    """Status shared by the ID and reference verification tracks."""
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class ReferenceStatus(str, Enum):
    """Lifecycle of a single referee."""
    DRAFT = "draft"
    PENDING = "pending"
    EMAIL_SENT = "email-sent"
    RESPONSE_RECEIVED = "response-received"
    VERIFIED = "verified"


class CertificateStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


INTERVIEW_PROGRESS_KEYS = ("documentsUploaded", "voiceInterview", "mcqTest", "codingChallenge")


def default_interview_progress() -> Dict[str, bool]:
    """Return a fresh all-false interview progress object."""
    return {key: False for key in INTERVIEW_PROGRESS_KEYS}


class InterviewProgressUpdate(BaseModel):
    """Partial update of interview progress; unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    documentsUploaded: Optional[bool] = None
    voiceInterview: Optional[bool] = None
    mcqTest: Optional[bool] = None
    codingChallenge: Optional[bool] = None


class UserProfile(BaseModel):
    """Public representation of a user account."""
    id: str
    email: str
    name: str
    emailVerified: bool = False
    createdAt: Optional[datetime] = None
    lastLoginAt: Optional[datetime] = None


class UpdateProfileRequest(BaseModel):
    """Profile update; only the display name may change."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be at least 2 characters')
        if len(v) > 100:
            raise ValueError('Name cannot exceed 100 characters')
        return v


class IdVerificationStatusUpdate(BaseModel):
    """Explicit ID-track transition; ``failed`` belongs to the reference track only."""
    status: VerificationStatus

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: VerificationStatus) -> VerificationStatus:
        if v == VerificationStatus.FAILED:
            raise ValueError('failed is not a valid ID verification status')
        return v


class ReferenceCheckStatusUpdate(BaseModel):
    status: VerificationStatus


class ReferenceView(BaseModel):
    """Reference as returned to its owner."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    company: str
    position: Optional[str] = None
    relationship: str
    status: ReferenceStatus
    emailSentDate: Optional[datetime] = None
    responseDate: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class UserDataResponse(BaseModel):
    """Aggregated verification record for the dashboard."""
    userId: str
    id: str
    email: str
    name: str
    purchasedProducts: List[str]
    interviewProgress: Dict[str, bool]
    idVerificationStatus: str
    referenceCheckStatus: str
    references: List[ReferenceView]
    progress: Dict[str, Any]
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
