"""
Notification bell APIs.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from auth.dependencies import get_current_actor
from core.exceptions import WarningTrackerError
from core.schemas import Actor, NotificationRecord
from routers.common import get_notifications, http_error
from services.access_policy import notification_campus
from services.notification_service import NotificationDispatcher


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationFeedResponse(BaseModel):
    """Bell contents; clients poll again after pollIntervalSeconds."""
    notifications: List[NotificationRecord]
    unread: int
    pollIntervalSeconds: int


@router.get("", response_model=NotificationFeedResponse)
async def get_feed(
    actor: Actor = Depends(get_current_actor),
    notifications: NotificationDispatcher = Depends(get_notifications)
):
    """Notifications for the caller's campus plus global ones, newest first."""
    try:
        return notifications.feed(actor)
    except WarningTrackerError as e:
        raise http_error(e)


@router.post("/{notification_id}/read", response_model=NotificationRecord)
async def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    notifications: NotificationDispatcher = Depends(get_notifications)
):
    """Mark a notification read by the caller. Repeating the call changes nothing."""
    try:
        notification = notifications.get(notification_id)
        campus = notification_campus(actor)
        if notification is None or (campus and notification.campus and notification.campus != campus):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
        return notifications.mark_read(notification_id, actor.user_id)
    except WarningTrackerError as e:
        raise http_error(e)
