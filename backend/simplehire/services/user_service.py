"""User profile and verification-record operations."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from simplehire.models.database import UserDB
from simplehire.models.user import INTERVIEW_PROGRESS_KEYS
from simplehire.services.auth import auth_service
from simplehire.services.catalog import get_product
from simplehire.services.progress import calculate_progress
from simplehire.services.reference_service import (
    derive_reference_check_status,
    reference_service,
    reference_to_dict,
)
from simplehire.services.session_service import session_service
from simplehire.utils.errors import Unauthorized, ValidationFailed

logger = logging.getLogger(__name__)


class UserService:
    """Dashboard aggregate, status transitions and account management."""

    def get_user_data(self, db: Session, user: UserDB) -> Dict[str, Any]:
        """
        Build the verification record shown on the dashboard.

        The reference-check status is derived from the referee list when any
        referee exists; otherwise the stored value is reported.
        """
        user_data = auth_service.ensure_user_data(db, user)
        references = reference_service.list_references(db, user.id)
        statuses = [r.status for r in references]
        reference_status = derive_reference_check_status(statuses, user_data.reference_check_status)
        interview_progress = self._interview_progress(user_data.interview_progress)

        report = calculate_progress(
            user_data.purchased_products or [],
            interview_progress=interview_progress,
            id_verification_status=user_data.id_verification_status,
            reference_statuses=statuses,
        )
        return {
            "userId": user.id,
            "id": user_data.id,
            "email": user.email,
            "name": user.name,
            "purchasedProducts": list(user_data.purchased_products or []),
            "interviewProgress": interview_progress,
            "idVerificationStatus": user_data.id_verification_status,
            "referenceCheckStatus": reference_status,
            "references": [reference_to_dict(r) for r in references],
            "progress": report.to_dict(),
            "createdAt": user_data.created_at,
            "updatedAt": user_data.updated_at,
        }

    @staticmethod
    def _interview_progress(stored) -> Dict[str, bool]:
        stored = stored or {}
        return {key: bool(stored.get(key, False)) for key in INTERVIEW_PROGRESS_KEYS}

    def get_products(self, db: Session, user: UserDB) -> Dict[str, Any]:
        user_data = auth_service.ensure_user_data(db, user)
        owned = list(user_data.purchased_products or [])
        return {
            "purchasedProducts": owned,
            "products": [get_product(product_id) for product_id in owned if get_product(product_id)],
        }

    def get_progress(self, db: Session, user: UserDB) -> Dict[str, Any]:
        data = self.get_user_data(db, user)
        return data["progress"]

    def update_profile(self, db: Session, user: UserDB, changes: Dict[str, Any]) -> UserDB:
        """
        Update the display name.

        Raises:
            ValidationFailed: when the request tries to change the email
        """
        if "email" in changes:
            raise ValidationFailed("Email cannot be changed", code="EMAIL_IMMUTABLE")
        if changes.get("name"):
            user.name = changes["name"]
            db.commit()
            db.refresh(user)
        return user

    def update_interview_progress(self, db: Session, user: UserDB, updates: Dict[str, bool]) -> Dict[str, bool]:
        """Merge step flags into the stored interview progress."""
        user_data = auth_service.ensure_user_data(db, user)
        merged = self._interview_progress(user_data.interview_progress)
        merged.update({key: bool(value) for key, value in updates.items() if value is not None})
        user_data.interview_progress = merged
        db.commit()
        return merged

    def set_interview_step(self, db: Session, user: UserDB, step: str) -> Dict[str, bool]:
        return self.update_interview_progress(db, user, {step: True})

    def set_id_verification_status(self, db: Session, user: UserDB, status: str) -> str:
        status = getattr(status, "value", status)
        user_data = auth_service.ensure_user_data(db, user)
        user_data.id_verification_status = status
        db.commit()
        logger.info(f"User {user.id} ID verification status -> {status}")
        return status

    def set_reference_check_status(self, db: Session, user: UserDB, status: str) -> str:
        status = getattr(status, "value", status)
        user_data = auth_service.ensure_user_data(db, user)
        user_data.reference_check_status = status
        db.commit()
        logger.info(f"User {user.id} reference check status -> {status}")
        return status

    def change_password(self, db: Session, user: UserDB, current_password: str, new_password: str) -> None:
        """
        Replace the password and sign out every device.

        Raises:
            Unauthorized: INVALID_CREDENTIALS when the current password is wrong
        """
        if not auth_service.verify_password(current_password, user.password_hash):
            raise Unauthorized("Current password is incorrect", code="INVALID_CREDENTIALS")
        user.password_hash = auth_service.get_password_hash(new_password)
        db.commit()
        revoked = auth_service.revoke_refresh_tokens(db, user.id)
        logger.info(f"Password changed for user {user.id}; revoked {revoked} refresh tokens")

    def delete_account(self, db: Session, user: UserDB) -> None:
        """Remove the user and every row it owns."""
        user_id = user.id
        session_service.expire_user_sessions(db, user_id, "Account deleted")
        db.delete(user)
        db.commit()
        logger.info(f"Deleted account {user_id}")


user_service = UserService()
