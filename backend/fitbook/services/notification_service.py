# backend/fitbook/services/notification_service.py
"""
Notification Service for FitBook

In-app notifications for trainers and clients. Booking notifications carry
a reference to the booking so that all of them can be retracted when the
booking is cancelled.

Sending is best-effort: a failure is logged and never propagates into the
booking operation that triggered it.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import BOOKING_REFERENCE_TYPE
from ..core.exceptions import NotFoundException
from ..models.notification import Notification
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """Creates, lists and retracts in-app notifications."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_notification_repository(db)

    @BaseService.measure_operation("notify")
    def notify(
        self,
        user_id: str,
        type: str,
        content: str,
        *,
        reference_id: Optional[str] = None,
        reference_type: Optional[str] = BOOKING_REFERENCE_TYPE,
        sender_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Deliver a notification to ``user_id``.

        Runs in its own transaction. Returns None when delivery failed.
        """
        try:
            with self.transaction():
                notification = self.repository.create(
                    user_id=user_id,
                    sender_id=sender_id,
                    type=type,
                    content=content,
                    reference_id=reference_id,
                    reference_type=reference_type if reference_id else None,
                )
        except Exception as exc:
            logger.error(
                "Failed to send notification",
                extra={
                    "user_id": user_id,
                    "notification_type": type,
                    "reference_id": reference_id,
                    "error": str(exc),
                },
            )
            return None

        self.log_operation(
            "notify", user_id=user_id, notification_type=type, reference_id=reference_id
        )
        return notification

    def list_for_user(
        self, user: User, *, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        return self.repository.list_for_user(user.id, unread_only=unread_only, limit=limit)

    @BaseService.measure_operation("mark_notification_read")
    def mark_read(self, notification_id: str, user: User) -> Notification:
        """Mark one of the user's own notifications as read."""
        notification = self.repository.get_for_user(notification_id, user.id)
        if notification is None:
            raise NotFoundException(
                "Notification not found", details={"notification_id": notification_id}
            )
        if not notification.is_read:
            with self.transaction():
                notification.is_read = True
                self.repository.flush()
        return notification

    @BaseService.measure_operation("retract_booking_notifications")
    def retract_for_booking(self, booking_id: str) -> int:
        """
        Delete every notification that references ``booking_id``.

        Best-effort like ``notify``; returns the number of rows removed.
        """
        try:
            with self.transaction():
                removed = self.repository.delete_by_reference(BOOKING_REFERENCE_TYPE, booking_id)
        except Exception as exc:
            logger.error(
                "Failed to retract booking notifications",
                extra={"booking_id": booking_id, "error": str(exc)},
            )
            return 0

        self.log_operation("retract_booking_notifications", booking_id=booking_id, removed=removed)
        return removed
