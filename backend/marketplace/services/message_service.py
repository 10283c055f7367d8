# backend/marketplace/services/message_service.py
"""
Message Service.

Chat between the two participants of a booking. The receiver of a message is
always the other participant; only the sender may delete a message and only
the receiver may mark it read.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, NotificationType
from ..core.exceptions import ForbiddenException, InvalidStateException, NotFoundException, ValidationException
from ..models.booking import Booking
from ..models.message import MESSAGE_MAX_LENGTH, Message
from ..models.user import User
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.message_repository import MessageRepository
from .base import BaseService
from .formatting import format_relative_time
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


def message_payload(message: Message, viewer_id: str) -> Dict[str, Any]:
    return {
        "id": message.id,
        "booking_id": message.booking_id,
        "content": message.content,
        "sent_at": message.sent_at,
        "formatted_time": format_relative_time(message.sent_at),
        "is_read": bool(message.is_read),
        "is_mine": message.sender_id == viewer_id,
    }


class MessageService(BaseService):
    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        message_repository: Optional[MessageRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.repository = message_repository or RepositoryFactory.create_message_repository(db)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)

    def _get_participating_booking(self, booking_id: str, user: User) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id, load_relationships=False)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        if not booking.is_participant(user.id):
            raise ForbiddenException("You are not part of this conversation.")
        return booking

    def _get_message(self, message_id: str) -> Message:
        message = self.repository.get_by_id(message_id, load_relationships=False)
        if message is None:
            raise NotFoundException("Message not found", details={"message_id": message_id})
        return message

    @BaseService.measure_operation("list_conversations")
    def list_conversations(self, user: User) -> List[Dict[str, Any]]:
        """One entry per booking with messages, most recent conversation first."""
        conversations = []
        for booking in self.booking_repository.list_with_messages_for_user(user.id):
            last = self.repository.get_last_for_booking(booking.id)
            is_customer = booking.customer_id == user.id
            other = booking.service_provider.user if is_customer else booking.customer
            conversations.append(
                {
                    "booking_id": booking.id,
                    "other_party_id": other.id if other else booking.other_party_id(user.id),
                    "other_party_name": other.full_name if other else "",
                    "last_message": last.content if last else "",
                    "last_message_at": last.sent_at if last else None,
                    "last_message_formatted_time": format_relative_time(last.sent_at) if last else "",
                    "unread_count": self.repository.count_unread(booking.id, user.id),
                }
            )
        conversations.sort(key=lambda entry: entry["last_message_at"], reverse=True)
        return conversations

    @BaseService.measure_operation("get_messages")
    def get_messages(self, user: User, booking_id: str) -> List[Dict[str, Any]]:
        """Conversation history, oldest first. Marks the caller's unread messages read."""
        self._get_participating_booking(booking_id, user)
        with self.transaction():
            marked = self.repository.mark_booking_read(booking_id, user.id)
        messages = self.repository.list_for_booking(booking_id)
        if marked:
            self.log_operation("mark_messages_read", booking_id=booking_id, count=marked)
        return [message_payload(message, user.id) for message in messages]

    @BaseService.measure_operation("send_message")
    def send_message(self, user: User, booking_id: str, content: str) -> Dict[str, Any]:
        text = (content or "").strip()
        if not text:
            raise ValidationException("Message content cannot be empty", code="EMPTY_MESSAGE")
        if len(text) > MESSAGE_MAX_LENGTH:
            raise ValidationException(
                f"Message content cannot exceed {MESSAGE_MAX_LENGTH} characters",
                code="MESSAGE_TOO_LONG",
            )

        booking = self._get_participating_booking(booking_id, user)
        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidStateException(
                "Messages cannot be sent on a cancelled booking.", current_status=booking.status
            )
        receiver_id = booking.other_party_id(user.id)

        try:
            with self.transaction():
                message = self.repository.create(
                    booking_id=booking.id,
                    sender_id=user.id,
                    receiver_id=receiver_id,
                    content=text,
                    is_read=False,
                )
                self.notification_service.create_notification(
                    receiver_id,
                    NotificationType.NEW_MESSAGE,
                    booking_id=booking.id,
                    extra={"sender_name": user.full_name},
                )
                self.notification_service.queue_push(
                    receiver_id, "new_message", message_payload(message, receiver_id)
                )
        except Exception:
            self.notification_service.discard_pending()
            raise
        self.notification_service.dispatch_pending()
        return message_payload(message, user.id)

    @BaseService.measure_operation("delete_message")
    def delete_message(self, user: User, message_id: str) -> None:
        message = self._get_message(message_id)
        if message.sender_id != user.id:
            raise ForbiddenException("You can only delete your own messages.")
        receiver_id = message.receiver_id
        with self.transaction():
            self.repository.delete(message_id)
        self.notification_service.queue_push(
            receiver_id, "message_deleted", {"message_id": message_id, "booking_id": message.booking_id}
        )
        self.notification_service.dispatch_pending()

    @BaseService.measure_operation("mark_message_read")
    def mark_read(self, user: User, message_id: str) -> None:
        message = self._get_message(message_id)
        if message.receiver_id != user.id:
            raise ForbiddenException("Only the receiver can mark a message as read.")
        if message.is_read:
            return
        with self.transaction():
            message.is_read = True
            self.repository.flush()
        self.notification_service.queue_push(
            message.sender_id, "message_read", {"message_id": message_id, "booking_id": message.booking_id}
        )
        self.notification_service.dispatch_pending()
