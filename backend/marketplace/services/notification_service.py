# backend/marketplace/services/notification_service.py
"""
Notification Service.

Dispatch happens in two phases so a booking transition and its notifications
commit or roll back together:

1. ``create_notification`` renders the template and inserts the row inside the
   caller's transaction, queueing the matching live pushes.
2. ``dispatch_pending`` runs after commit and hands the queued pushes to the
   transport. Push failures are logged and dropped; they never reach the
   caller.

``notify`` does both for callers that have no surrounding transaction.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import NotificationType
from ..models.notification import Notification
from ..repositories.factory import RepositoryFactory
from ..repositories.notification_repository import NotificationRepository
from .base import BaseService
from .formatting import format_relative_time
from .notification_templates import get_template, render_notification
from .realtime.transport import NotificationTransport, NullNotificationTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingPush:
    user_id: str
    payload: Dict[str, Any]


class NotificationService(BaseService):
    def __init__(
        self,
        db: Session,
        transport: Optional[NotificationTransport] = None,
        notification_repository: Optional[NotificationRepository] = None,
    ):
        super().__init__(db)
        self.transport: NotificationTransport = transport or NullNotificationTransport()
        self.repository = notification_repository or RepositoryFactory.create_notification_repository(db)
        self._pending: List[PendingPush] = []

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def create_notification(
        self,
        user_id: str,
        notification_type: NotificationType,
        booking_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Render and persist a notification; queue its pushes until ``dispatch_pending``."""
        template = get_template(notification_type)
        title, message = render_notification(template, **(extra or {}))
        notification = self.repository.create(
            user_id=user_id,
            booking_id=booking_id,
            type=template.type,
            title=title,
            message=message,
            is_read=False,
        )
        self.queue_push(user_id, "notification", notification.to_payload())
        if booking_id:
            self.queue_push(
                user_id, "booking_updated", {"booking_id": booking_id, "type": template.type}
            )
        return notification

    def queue_push(self, user_id: str, event: str, data: Dict[str, Any]) -> None:
        self._pending.append(PendingPush(user_id, {"event": event, "data": data}))

    def discard_pending(self) -> None:
        """Drop queued pushes after a rollback."""
        self._pending.clear()

    def dispatch_pending(self) -> int:
        """
        Push everything queued since the last dispatch. Never raises.

        Returns the number of pushes handed to the transport.
        """
        pending, self._pending = self._pending, []
        handed_off = 0
        for push in pending:
            try:
                self.transport.push(push.user_id, push.payload)
                handed_off += 1
            except Exception as e:
                logger.error(
                    "Live push of %s to %s failed: %s",
                    push.payload.get("event"),
                    push.user_id,
                    e,
                )
        return handed_off

    @BaseService.measure_operation("notify")
    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        booking_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        try:
            with self.transaction():
                notification = self.create_notification(user_id, notification_type, booking_id, extra)
        except Exception:
            self.discard_pending()
            raise
        self.dispatch_pending()
        return notification

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    @BaseService.measure_operation("list_notifications")
    def list_for_user(self, user_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Newest-first inbox. Entries keep the read flag they had before this
        call; every unread notification is then marked read.
        """
        notifications = self.repository.list_for_user(user_id, limit=limit)
        entries = []
        for notification in notifications:
            entry = notification.to_payload()
            entry["formatted_time"] = format_relative_time(notification.created_at)
            entries.append(entry)

        if any(not entry["is_read"] for entry in entries):
            with self.transaction():
                marked = self.repository.mark_all_read(user_id)
            self.log_operation("mark_notifications_read", user_id=user_id, count=marked)
        return entries

    def unread_count(self, user_id: str) -> int:
        return self.repository.count_unread(user_id)
