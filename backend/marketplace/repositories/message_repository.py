# backend/marketplace/repositories/message_repository.py
"""Message Repository: chat history per booking and read-state bookkeeping."""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.message import Message
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)

    def list_for_booking(self, booking_id: str) -> List[Message]:
        try:
            return (
                self.db.query(Message)
                .filter(Message.booking_id == booking_id)
                .order_by(Message.sent_at, Message.id)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error loading messages for booking %s: %s", booking_id, e)
            raise RepositoryException(f"Failed to load messages: {e}") from e

    def get_last_for_booking(self, booking_id: str) -> Optional[Message]:
        try:
            return (
                self.db.query(Message)
                .filter(Message.booking_id == booking_id)
                .order_by(Message.sent_at.desc(), Message.id.desc())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error("Error loading last message for booking %s: %s", booking_id, e)
            raise RepositoryException(f"Failed to load messages: {e}") from e

    def count_unread(self, booking_id: str, receiver_id: str) -> int:
        return self.count(booking_id=booking_id, receiver_id=receiver_id, is_read=False)

    def mark_booking_read(self, booking_id: str, receiver_id: str) -> int:
        """Mark every unread message addressed to ``receiver_id`` in the booking as read."""
        try:
            result = self.db.execute(
                update(Message)
                .where(
                    Message.booking_id == booking_id,
                    Message.receiver_id == receiver_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("Error marking messages read for booking %s: %s", booking_id, e)
            raise RepositoryException(f"Failed to mark messages read: {e}") from e
