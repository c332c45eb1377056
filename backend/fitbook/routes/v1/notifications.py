# backend/fitbook/routes/v1/notifications.py
"""
Notification routes - API v1

Endpoints:
    GET /notifications - List own notifications
    POST /notifications/{notification_id}/read - Mark one as read
"""

import logging

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies import get_current_user, get_notification_service
from ...core.constants import ULID_PATH_PATTERN
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.notification import NotificationListResponse, NotificationResponse
from ...services.notification_service import NotificationService
from .common import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications-v1"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    notifications = notification_service.list_for_user(
        current_user, unread_only=unread_only, limit=limit
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=sum(1 for n in notifications if not n.is_read),
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str = Path(..., description="Notification ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    try:
        notification = notification_service.mark_read(notification_id, current_user)
        return NotificationResponse.model_validate(notification)
    except DomainException as e:
        handle_domain_exception(e)
