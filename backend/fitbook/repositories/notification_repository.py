# backend/fitbook/repositories/notification_repository.py
"""
Notification Repository for FitBook

Data access for in-app notifications, including retraction of every
notification that references a given entity.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.notification import Notification
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    """Repository for in-app notifications."""

    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        query = self._build_query().filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return self._execute_query(query)

    def list_by_reference(self, reference_type: str, reference_id: str) -> List[Notification]:
        return self.find_by(reference_type=reference_type, reference_id=reference_id)

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[Notification]:
        return self.find_one_by(id=notification_id, user_id=user_id)

    def delete_by_reference(self, reference_type: str, reference_id: str) -> int:
        """Delete every notification pointing at ``reference_type``/``reference_id``."""
        try:
            return (
                self.db.query(Notification)
                .filter(
                    Notification.reference_type == reference_type,
                    Notification.reference_id == reference_id,
                )
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error deleting notifications for {reference_type} {reference_id}: {str(e)}"
            )
            self._raise_translated(e, "delete")
