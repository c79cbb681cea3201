"""Outbound notification log for Simplehire.

Reference requests and certificate notices are recorded here. Delivery to a
mail provider is outside this service; ``delivered`` stays False until a
provider marks the notification sent.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from simplehire.config import settings

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Notification type enumeration."""
    REFERENCE_REQUEST = "reference_request"
    REFERENCE_REMINDER = "reference_reminder"
    CERTIFICATE_ISSUED = "certificate_issued"
    ID_VERIFICATION_SUBMITTED = "id_verification_submitted"


class Notification(BaseModel):
    """Notification model."""
    id: str
    user_id: str
    type: NotificationType
    recipient: str
    subject: str
    message: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
    delivered: bool = False


class NotificationService:
    """Keeps an in-process log of notifications per user."""

    def __init__(self):
        self._notifications: Dict[str, List[Notification]] = {}

    def create_notification(
        self,
        user_id: str,
        notification_type: NotificationType,
        recipient: str,
        subject: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """
        Record a notification for a user.

        Args:
            user_id: ID of the user the notification is about
            notification_type: Type of notification
            recipient: Email address it is addressed to
            subject: Subject line
            message: Body text
            details: Optional additional details

        Returns:
            Created notification
        """
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=notification_type,
            recipient=recipient,
            subject=subject,
            message=message,
            details=details,
            created_at=datetime.utcnow()
        )
        self._notifications.setdefault(user_id, []).append(notification)
        logger.info(f"Queued {notification_type.value} notification for user {user_id} to {recipient}")
        return notification

    def get_user_notifications(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
        """Notifications for a user, newest first."""
        user_notifications = sorted(
            self._notifications.get(user_id, []),
            key=lambda n: n.created_at,
            reverse=True,
        )
        if limit:
            user_notifications = user_notifications[:limit]
        return user_notifications

    def notify_reference_request(
        self,
        user_id: str,
        candidate_name: str,
        reference_id: str,
        reference_name: str,
        reference_email: str,
        reminder: bool = False,
    ) -> Notification:
        """Ask a referee to respond about a candidate."""
        response_url = f"{settings.frontend_url}/reference-response/{reference_id}"
        return self.create_notification(
            user_id=user_id,
            notification_type=NotificationType.REFERENCE_REMINDER if reminder else NotificationType.REFERENCE_REQUEST,
            recipient=reference_email,
            subject=f"Reference request for {candidate_name}",
            message=(
                f"Hi {reference_name}, {candidate_name} listed you as a professional reference. "
                f"Please share your feedback at {response_url}."
            ),
            details={"referenceId": reference_id, "responseUrl": response_url},
        )

    def notify_certificate_issued(self, user_id: str, email: str, certificate_number: str) -> Notification:
        url = f"{settings.app_url}/certificate/{certificate_number}"
        return self.create_notification(
            user_id=user_id,
            notification_type=NotificationType.CERTIFICATE_ISSUED,
            recipient=email,
            subject="Your Simplehire certificate is ready",
            message=f"Your certificate {certificate_number} is available at {url}.",
            details={"certificateNumber": certificate_number, "url": url},
        )

    def clear(self) -> None:
        self._notifications.clear()


notification_service = NotificationService()
