# backend/marketplace/repositories/notification_repository.py
import logging
from typing import List

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.notification import Notification
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def list_for_user(self, user_id: str, limit: int = 100) -> List[Notification]:
        try:
            return (
                self.db.query(Notification)
                .filter(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing notifications for %s: %s", user_id, e)
            raise RepositoryException(f"Failed to list notifications: {e}") from e

    def mark_all_read(self, user_id: str) -> int:
        try:
            result = self.db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("Error marking notifications read for %s: %s", user_id, e)
            raise RepositoryException(f"Failed to mark notifications read: {e}") from e

    def count_unread(self, user_id: str) -> int:
        return self.count(user_id=user_id, is_read=False)
