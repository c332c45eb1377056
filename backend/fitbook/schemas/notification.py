# backend/fitbook/schemas/notification.py
"""Notification schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict

from .base import StandardizedModel


class NotificationResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    sender_id: Optional[str] = None
    type: str
    content: str
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


class NotificationListResponse(StandardizedModel):
    notifications: List[NotificationResponse]
    unread_count: int
