"""
Notification dispatcher: fans lifecycle events out to campus audiences and tracks read state.
"""
from typing import Any, Dict, List, Optional, Union

from core.exceptions import OperationFailed
from core.logger import logger
from core.schemas import Actor, NotificationRecord
from core.utils import new_id, utcnow
from core.validators import parse_campus
from database.models import Campus, NotificationType
from services.access_policy import notification_campus
from storage.base import ReportStore


class NotificationDispatcher:
    """Creates campus-scoped notifications and records who has read them."""

    def __init__(
        self,
        store: ReportStore,
        retention_limit: int = 50,
        default_campus: Union[Campus, str] = Campus.HN,
        poll_interval_seconds: int = 30
    ):
        """
        Args:
            store: Store holding the notification queue
            retention_limit: Max notifications kept; oldest are evicted past it
            default_campus: Campus stamped on notifications created without one
            poll_interval_seconds: Refresh interval advertised to clients (staleness bound)
        """
        self.store = store
        self.retention_limit = retention_limit
        self.default_campus = parse_campus(default_campus)
        self.poll_interval_seconds = poll_interval_seconds

    def notify(
        self,
        campus: Optional[Union[Campus, str]],
        title: str,
        message: str,
        type: NotificationType,
        related_id: Optional[str] = None
    ) -> NotificationRecord:
        """
        Create a notification.

        Args:
            campus: Audience campus; defaults to the baseline campus when unset
            title: Short title
            message: Body text
            type: Event kind
            related_id: Report that triggered the event

        Returns:
            The stored notification
        """
        notification = NotificationRecord(
            id=new_id(),
            campus=parse_campus(campus) if campus else self.default_campus,
            title=title,
            message=message,
            type=type,
            related_id=related_id,
            read_by=[],
            created_at=utcnow(),
        )
        self.store.insert_notification(notification, self.retention_limit)
        logger.info(f"Notification {type.value} for campus {notification.campus.value} (report {related_id})")
        return notification

    def get(self, notification_id: str) -> Optional[NotificationRecord]:
        return self.store.get_notification(notification_id)

    def mark_read(self, notification_id: str, user_id: str) -> NotificationRecord:
        """Add `user_id` to read_by. Calling it again changes nothing."""
        notification = self.store.add_reader(notification_id, user_id)
        if notification is None:
            raise OperationFailed(f"Notification not found: {notification_id}")
        return notification

    def list(self, user_id: str, campus: Optional[Union[Campus, str]] = None) -> List[NotificationRecord]:
        """
        Notifications visible to a user, newest first.

        With a campus, returns that campus's notifications plus global (campus-less)
        ones; without, returns everything.
        """
        return self.store.list_notifications(parse_campus(campus) if campus else None)

    def unread_count(self, user_id: str, campus: Optional[Union[Campus, str]] = None) -> int:
        return sum(1 for n in self.list(user_id, campus) if not n.is_read_by(user_id))

    def feed(self, actor: Actor) -> Dict[str, Any]:
        """Notification bell for an actor, with the polling contract clients should follow."""
        notifications = self.list(actor.user_id, notification_campus(actor))
        return {
            "notifications": notifications,
            "unread": sum(1 for n in notifications if not n.is_read_by(actor.user_id)),
            "pollIntervalSeconds": self.poll_interval_seconds,
        }

