"""Models package initialization."""

from .user import (
    ProductId,
    VerificationStatus,
    ReferenceStatus,
    CertificateStatus,
    SessionStatus,
    InterviewProgressUpdate,
    UserProfile,
)
from .database import (
    Base,
    UserDB,
    RefreshTokenDB,
    UserDataDB,
    ReferenceDB,
    CertificateDB,
    PaymentDB,
    IDVerificationDB,
    AssessmentSessionDB,
    McqQuestionDB,
    CodingChallengeDB,
    ProctoringEventDB,
)

__all__ = [
    # Enums
    "ProductId",
    "VerificationStatus",
    "ReferenceStatus",
    "CertificateStatus",
    "SessionStatus",
    # Pydantic models
    "InterviewProgressUpdate",
    "UserProfile",
    # SQLAlchemy models
    "Base",
    "UserDB",
    "RefreshTokenDB",
    "UserDataDB",
    "ReferenceDB",
    "CertificateDB",
    "PaymentDB",
    "IDVerificationDB",
    "AssessmentSessionDB",
    "McqQuestionDB",
    "CodingChallengeDB",
    "ProctoringEventDB",
]
