"""Reference check management."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from simplehire.models.database import ReferenceDB, UserDB
from simplehire.models.user import ReferenceStatus, VerificationStatus
from simplehire.services.auth import auth_service
from simplehire.services.notification_service import notification_service
from simplehire.utils.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

MAX_REFERENCES = 5

_SENT_STATUSES = {
    ReferenceStatus.EMAIL_SENT.value,
    ReferenceStatus.RESPONSE_RECEIVED.value,
    ReferenceStatus.VERIFIED.value,
}


def reference_to_dict(reference: ReferenceDB) -> Dict[str, Any]:
    return {
        "id": reference.id,
        "name": reference.name,
        "email": reference.email,
        "phone": reference.phone,
        "company": reference.company,
        "position": reference.position,
        "relationship": reference.relationship_type,
        "status": reference.status,
        "emailSentDate": reference.submitted_at,
        "responseDate": reference.response_received_at,
        "verifiedAt": reference.verified_at,
        "createdAt": reference.created_at,
    }


def derive_reference_check_status(statuses: List[str], stored: str) -> str:
    """
    Reference track status implied by the referee list.

    All verified wins; any referee past draft means in progress. An empty or
    all-draft list keeps whatever status is stored.
    """
    if statuses and all(s == ReferenceStatus.VERIFIED.value for s in statuses):
        return VerificationStatus.VERIFIED.value
    if any(s != ReferenceStatus.DRAFT.value for s in statuses):
        return VerificationStatus.IN_PROGRESS.value
    return stored


class ReferenceService:
    """CRUD and outreach for a candidate's references."""

    def list_references(self, db: Session, user_id: str) -> List[ReferenceDB]:
        return db.query(ReferenceDB).filter(ReferenceDB.user_id == user_id).order_by(ReferenceDB.created_at.desc()).all()

    def get_owned(self, db: Session, user_id: str, reference_id: str) -> ReferenceDB:
        reference = db.query(ReferenceDB).filter(
            ReferenceDB.id == reference_id,
            ReferenceDB.user_id == user_id,
        ).first()
        if reference is None:
            raise NotFound("Reference not found")
        return reference

    def create(self, db: Session, user_id: str, fields: Dict[str, Any]) -> ReferenceDB:
        """
        Add a referee in draft state.

        Raises:
            ValidationFailed: LIMIT_EXCEEDED once the user has five references
        """
        count = db.query(ReferenceDB).filter(ReferenceDB.user_id == user_id).count()
        if count >= MAX_REFERENCES:
            raise ValidationFailed(f"Maximum of {MAX_REFERENCES} references allowed", code="LIMIT_EXCEEDED")

        reference = ReferenceDB(
            user_id=user_id,
            name=fields["name"],
            email=str(fields["email"]).lower(),
            phone=fields["phone"],
            company=fields["company"],
            position=fields["position"],
            relationship_type=fields["relationship"],
            status=ReferenceStatus.DRAFT.value,
        )
        db.add(reference)
        db.commit()
        db.refresh(reference)
        return reference

    def update(self, db: Session, user_id: str, reference_id: str, changes: Dict[str, Any]) -> ReferenceDB:
        reference = self.get_owned(db, user_id, reference_id)
        for key, value in changes.items():
            if key == "relationship":
                reference.relationship_type = value
            elif key == "email":
                reference.email = str(value).lower()
            elif key == "status":
                self._apply_status(reference, value)
            else:
                setattr(reference, key, value)
        db.commit()
        db.refresh(reference)
        self.sync_user_status(db, user_id)
        return reference

    def _apply_status(self, reference: ReferenceDB, status: str) -> None:
        now = datetime.utcnow()
        status = getattr(status, "value", status)
        reference.status = status
        if status == ReferenceStatus.EMAIL_SENT.value and reference.submitted_at is None:
            reference.submitted_at = now
        elif status == ReferenceStatus.RESPONSE_RECEIVED.value:
            reference.response_received_at = reference.response_received_at or now
        elif status == ReferenceStatus.VERIFIED.value:
            reference.response_received_at = reference.response_received_at or now
            reference.verified_at = now

    def delete(self, db: Session, user_id: str, reference_id: str) -> None:
        reference = self.get_owned(db, user_id, reference_id)
        if reference.status == ReferenceStatus.EMAIL_SENT.value or reference.submitted_at is not None:
            raise ValidationFailed("Cannot delete submitted references", code="SUBMITTED_REFERENCE")
        db.delete(reference)
        db.commit()

    def submit(self, db: Session, user: UserDB, reference_ids: List[str]) -> Dict[str, Any]:
        """
        Send reference requests for the given referees.

        Returns:
            dict: submitted, emailsSent and failedEmails counts
        """
        if not reference_ids:
            raise ValidationFailed("At least 1 reference is required", code="NO_REFERENCES")

        references = db.query(ReferenceDB).filter(
            ReferenceDB.user_id == user.id,
            ReferenceDB.id.in_(reference_ids),
        ).all()
        if not references:
            raise NotFound("No matching references found")

        now = datetime.utcnow()
        for reference in references:
            reference.status = ReferenceStatus.EMAIL_SENT.value
            reference.submitted_at = now

        user_data = auth_service.ensure_user_data(db, user)
        user_data.reference_check_status = VerificationStatus.IN_PROGRESS.value
        db.commit()

        for reference in references:
            notification_service.notify_reference_request(
                user_id=user.id,
                candidate_name=user.name,
                reference_id=reference.id,
                reference_name=reference.name,
                reference_email=reference.email,
            )
        logger.info(f"User {user.id} submitted {len(references)} references")
        return {"submitted": len(references), "emailsSent": len(references), "failedEmails": []}

    def resend(self, db: Session, user: UserDB, reference_id: str) -> ReferenceDB:
        reference = self.get_owned(db, user.id, reference_id)
        if reference.status not in _SENT_STATUSES:
            raise ValidationFailed("Reference has not been submitted yet", code="NOT_SUBMITTED")
        notification_service.notify_reference_request(
            user_id=user.id,
            candidate_name=user.name,
            reference_id=reference.id,
            reference_name=reference.name,
            reference_email=reference.email,
            reminder=True,
        )
        return reference

    def summary(self, db: Session, user_id: str) -> Dict[str, int]:
        statuses = [r.status for r in self.list_references(db, user_id)]
        return {
            "total": len(statuses),
            "draft": statuses.count(ReferenceStatus.DRAFT.value),
            "sent": statuses.count(ReferenceStatus.EMAIL_SENT.value),
            "completed": statuses.count(ReferenceStatus.RESPONSE_RECEIVED.value),
            "verified": statuses.count(ReferenceStatus.VERIFIED.value),
        }

    def sync_user_status(self, db: Session, user_id: str) -> Optional[str]:
        """Store the reference-check status implied by the current referee list."""
        user = auth_service.get_user_by_id(db, user_id)
        if user is None:
            return None
        user_data = auth_service.ensure_user_data(db, user)
        statuses = [r.status for r in self.list_references(db, user_id)]
        derived = derive_reference_check_status(statuses, user_data.reference_check_status)
        if derived != user_data.reference_check_status:
            user_data.reference_check_status = derived
            db.commit()
        return derived


reference_service = ReferenceService()
