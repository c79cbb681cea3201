"""SQLAlchemy database models for Simplehire."""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Float, Text, JSON, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime
import uuid

from .user import (
    VerificationStatus,
    ReferenceStatus,
    CertificateStatus,
    SessionStatus,
    default_interview_progress,
)

Base = declarative_base()


def generate_uuid():
    """Generate a UUID string."""
    return str(uuid.uuid4())


class UserDB(Base):
    """User account."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    # Google-only accounts have no password
    password_hash = Column(String, nullable=True)
    name = Column(String, nullable=False)
    google_id = Column(String, unique=True, nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    user_data = relationship("UserDataDB", uselist=False, back_populates="user", cascade="all, delete-orphan")
    references = relationship("ReferenceDB", back_populates="user", cascade="all, delete-orphan")
    certificates = relationship("CertificateDB", back_populates="user", cascade="all, delete-orphan")
    payments = relationship("PaymentDB", cascade="all, delete-orphan")
    id_verification = relationship("IDVerificationDB", uselist=False, cascade="all, delete-orphan")
    refresh_tokens = relationship("RefreshTokenDB", cascade="all, delete-orphan")
    sessions = relationship("AssessmentSessionDB", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class RefreshTokenDB(Base):
    """Hashed refresh token issued to a user."""
    __tablename__ = "refresh_tokens"

    id = Column(String, primary_key=True, default=generate_uuid)
    token_hash = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class UserDataDB(Base):
    """Per-user verification record."""
    __tablename__ = "user_data"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    purchased_products = Column(JSON, nullable=False, default=list)
    interview_progress = Column(JSON, nullable=False, default=default_interview_progress)
    id_verification_status = Column(String, nullable=False, default=VerificationStatus.NOT_STARTED.value)
    reference_check_status = Column(String, nullable=False, default=VerificationStatus.NOT_STARTED.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("UserDB", back_populates="user_data")


class ReferenceDB(Base):
    """Professional referee added by a candidate."""
    __tablename__ = "user_references"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    company = Column(String, nullable=False)
    position = Column(String, nullable=True)
    relationship_type = Column("relationship", String, nullable=False)
    status = Column(String, nullable=False, default=ReferenceStatus.DRAFT.value)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    response_received_at = Column(DateTime(timezone=True), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    response_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("UserDB", back_populates="references")


class CertificateDB(Base):
    """Issued verification certificate, public by certificate number."""
    __tablename__ = "certificates"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String, nullable=False)
    certificate_number = Column(String, unique=True, nullable=False, index=True)
    issue_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    status = Column(String, nullable=False, default=CertificateStatus.ACTIVE.value)
    skills_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    user = relationship("UserDB", back_populates="certificates")


class PaymentDB(Base):
    """Record of a Stripe charge; one row per payment intent."""
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    currency = Column(String, nullable=False, default="usd")
    status = Column(String, nullable=False)
    payment_intent_id = Column(String, unique=True, nullable=False, index=True)
    payment_method_id = Column(String, nullable=True)
    granted_products = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class IDVerificationDB(Base):
    """Uploaded identity documents; at most one row per user."""
    __tablename__ = "id_verifications"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    id_document_url = Column(String, nullable=True)
    id_document_type = Column(String, nullable=True)
    visa_document_url = Column(String, nullable=True)
    visa_document_type = Column(String, nullable=True)
    selfie_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default=VerificationStatus.IN_PROGRESS.value)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class AssessmentSessionDB(Base):
    """Server-side record of one assessment attempt."""
    __tablename__ = "sessions"

    id = Column(String, primary_key=True, default=generate_uuid)
    session_id = Column(String, unique=True, nullable=False, index=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default=SessionStatus.ACTIVE.value, index=True)
    data = Column(JSON, nullable=False, default=dict)
    last_activity = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    expiry_reason = Column(String, nullable=True)
    expired_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Session(session_id={self.session_id}, status={self.status})>"


class McqQuestionDB(Base):
    """Multiple-choice question bank entry."""
    __tablename__ = "mcq_questions"

    id = Column(String, primary_key=True, default=generate_uuid)
    skill = Column(String, nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_option_index = Column(Integer, nullable=False)
    difficulty = Column(String, nullable=False, default="medium")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class CodingChallengeDB(Base):
    """Coding challenge bank entry."""
    __tablename__ = "coding_challenges"

    id = Column(String, primary_key=True, default=generate_uuid)
    skill = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    language = Column(String, nullable=False, default="javascript")
    starter_code = Column(Text, nullable=True)
    test_cases = Column(JSON, nullable=True)
    difficulty = Column(String, nullable=False, default="medium")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class ProctoringEventDB(Base):
    """Outcome of one proctoring check during an interview."""
    __tablename__ = "proctoring_events"

    id = Column(String, primary_key=True, default=generate_uuid)
    session_id = Column(String, nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    event_type = Column(String, nullable=False)
    similarity = Column(Float, nullable=True)
    alert_triggered = Column(Boolean, default=False, nullable=False)
    violations = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow)
