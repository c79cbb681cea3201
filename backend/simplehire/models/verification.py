"""Request models for payments, references, sessions, interviews and proctoring."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .user import ReferenceStatus


class CreatePaymentIntentRequest(BaseModel):
    productId: str


class ConfirmPaymentRequest(BaseModel):
    paymentIntentId: str
    productId: Optional[str] = None


class ReferenceCreateRequest(BaseModel):
    """New referee details; every field is required."""
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=5, max_length=30)
    company: str = Field(min_length=1, max_length=200)
    position: str = Field(min_length=1, max_length=200)
    relationship: str = Field(min_length=1, max_length=100)

    @field_validator('name', 'company', 'position', 'relationship', 'phone')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v


class ReferenceUpdateRequest(BaseModel):
    """Partial referee update."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=5, max_length=30)
    company: Optional[str] = Field(default=None, min_length=1, max_length=200)
    position: Optional[str] = Field(default=None, min_length=1, max_length=200)
    relationship: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[ReferenceStatus] = None


class SubmitReferencesRequest(BaseModel):
    referenceIds: List[str] = Field(default_factory=list)


class SessionIdRequest(BaseModel):
    sessionId: Optional[str] = None


class ExpireSessionRequest(BaseModel):
    sessionId: Optional[str] = None
    reason: Optional[str] = None


class VoiceStartRequest(BaseModel):
    role: Optional[str] = None


class VoiceAnswer(BaseModel):
    questionId: str
    transcript: str


class VoiceCompleteRequest(BaseModel):
    sessionId: str
    answers: List[VoiceAnswer] = Field(default_factory=list)


class McqAnswer(BaseModel):
    questionId: str
    selectedOptionIndex: int


class McqSubmitRequest(BaseModel):
    answers: List[McqAnswer]


class CodingSubmitRequest(BaseModel):
    challengeId: str = Field(min_length=1)
    code: str = Field(min_length=1)
    language: str = Field(min_length=1)


class ProctoringCheckRequest(BaseModel):
    """Frame pair submitted for identity verification or monitoring."""
    interviewId: str
    referenceImageBase64: Optional[str] = None
    liveImageBase64: Optional[str] = None
