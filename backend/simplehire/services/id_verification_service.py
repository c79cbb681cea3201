"""ID and visa document collection and review."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from simplehire.models.database import IDVerificationDB, UserDB
from simplehire.models.user import VerificationStatus
from simplehire.services.auth import auth_service
from simplehire.services.document_verification import document_verification_service
from simplehire.services.storage_service import (
    ID_DOCUMENTS_FOLDER,
    SELFIES_FOLDER,
    VISA_DOCUMENTS_FOLDER,
    StoredFile,
    storage_service,
)
from simplehire.utils.errors import ValidationFailed

logger = logging.getLogger(__name__)

DOCUMENT_ID = "id"
DOCUMENT_VISA = "visa"
DOCUMENT_SELFIE = "selfie"

FOLDERS = {
    DOCUMENT_ID: ID_DOCUMENTS_FOLDER,
    DOCUMENT_VISA: VISA_DOCUMENTS_FOLDER,
    DOCUMENT_SELFIE: SELFIES_FOLDER,
}

MANUAL_REVIEW_TIME = "24-48 hours"


def storage_key(url: Optional[str]) -> Optional[str]:
    """Storage key (``folder/name``) from a stored file url."""
    if not url:
        return None
    parts = url.rstrip("/").split("/")
    return "/".join(parts[-2:])


def verification_to_dict(record: IDVerificationDB) -> Dict[str, Any]:
    return {
        "id": record.id,
        "status": record.status,
        "idDocumentUrl": record.id_document_url,
        "idDocumentType": record.id_document_type,
        "visaDocumentUrl": record.visa_document_url,
        "visaDocumentType": record.visa_document_type,
        "selfieUrl": record.selfie_url,
        "submittedAt": record.submitted_at,
        "reviewedAt": record.reviewed_at,
    }


class IDVerificationService:
    """Upserts the per-user ID verification record and runs the review."""

    def get_record(self, db: Session, user_id: str) -> Optional[IDVerificationDB]:
        return db.query(IDVerificationDB).filter(IDVerificationDB.user_id == user_id).first()

    def _mirror_status(self, db: Session, user: UserDB, status: str) -> None:
        user_data = auth_service.ensure_user_data(db, user)
        user_data.id_verification_status = status

    @staticmethod
    def _document_url(record: IDVerificationDB, document: str) -> Optional[str]:
        return {
            DOCUMENT_ID: record.id_document_url,
            DOCUMENT_VISA: record.visa_document_url,
            DOCUMENT_SELFIE: record.selfie_url,
        }.get(document)

    def record_upload(self, db: Session, user: UserDB, document: str, stored: StoredFile) -> IDVerificationDB:
        """
        Attach an uploaded file to the user's verification record.

        The record is created on the first upload with status in-progress.
        A re-upload replaces the earlier file, which is removed from storage.

        Args:
            db: Database session
            user: Uploading user
            document: One of ``id``, ``visa`` or ``selfie``
            stored: Where the file was written
        """
        record = self.get_record(db, user.id)
        created = record is None
        if created:
            record = IDVerificationDB(user_id=user.id, status=VerificationStatus.IN_PROGRESS.value)
            db.add(record)

        replaced = None if created else self._document_url(record, document)

        if document == DOCUMENT_ID:
            record.id_document_url = stored.url
            record.id_document_type = stored.content_type
        elif document == DOCUMENT_VISA:
            record.visa_document_url = stored.url
            record.visa_document_type = stored.content_type
        elif document == DOCUMENT_SELFIE:
            record.selfie_url = stored.url
        else:
            raise ValidationFailed(f"Unknown document type: {document}")

        if created:
            self._mirror_status(db, user, VerificationStatus.IN_PROGRESS.value)
        db.commit()
        db.refresh(record)
        if replaced and replaced != stored.url:
            storage_service.delete(storage_key(replaced))
        logger.info(f"User {user.id} uploaded {document} document")
        return record

    def submit(self, db: Session, user: UserDB) -> Dict[str, Any]:
        """
        Submit uploaded documents for review.

        When document verification is configured the ID and selfie are checked
        automatically; a passing check marks the record verified. A failing or
        unavailable check leaves it pending for manual review.

        Raises:
            ValidationFailed: MISSING_DOCUMENTS without an ID document and a selfie
        """
        record = self.get_record(db, user.id)
        if record is None or not record.id_document_url or not record.selfie_url:
            raise ValidationFailed("ID document and selfie are required", code="MISSING_DOCUMENTS")

        status = VerificationStatus.PENDING.value
        ai_result: Optional[Dict[str, Any]] = None
        notes: Dict[str, Any] = {"aiVerification": False}

        if document_verification_service.configured:
            try:
                outcome = document_verification_service.perform_full_verification(
                    storage_key(record.id_document_url),
                    storage_key(record.selfie_url),
                )
            except Exception as e:
                logger.exception(f"Automatic ID verification failed for user {user.id}, manual review needed: {e}")
                notes = {"aiVerification": False, "error": str(e)}
            else:
                notes = outcome.review_notes()
                ai_result = {
                    "success": outcome.success,
                    "score": outcome.overall_score,
                    "issues": outcome.issues,
                }
                if outcome.success:
                    status = VerificationStatus.VERIFIED.value

        now = datetime.utcnow()
        record.status = status
        record.submitted_at = now
        record.review_notes = json.dumps(notes, default=str)
        if status == VerificationStatus.VERIFIED.value:
            record.reviewed_at = now
        self._mirror_status(db, user, status)
        db.commit()
        db.refresh(record)
        logger.info(f"User {user.id} submitted ID verification: {status}")

        result = {
            "verificationId": record.id,
            "status": status,
            "estimatedReviewTime": "Verified" if status == VerificationStatus.VERIFIED.value else MANUAL_REVIEW_TIME,
        }
        if ai_result is not None:
            result["aiVerification"] = ai_result
        return result

    def get_status(self, db: Session, user_id: str) -> Dict[str, Any]:
        record = self.get_record(db, user_id)
        if record is None:
            return {"status": VerificationStatus.NOT_STARTED.value, "verification": None}
        return {"status": record.status, "verification": verification_to_dict(record)}


id_verification_service = IDVerificationService()
