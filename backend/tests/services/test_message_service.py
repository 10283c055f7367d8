"""Booking chat: who may talk, what gets stored, and which live events go out."""

from datetime import timedelta

import pytest

from marketplace.core.enums import BookingStatus, NotificationType
from marketplace.core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from marketplace.core.timezone_utils import utc_now
from marketplace.models.message import Message
from marketplace.models.notification import Notification
from marketplace.services.message_service import MessageService

from tests.builders import make_booking, make_user


@pytest.fixture
def message_service(db, notification_service) -> MessageService:
    return MessageService(db, notification_service=notification_service)


@pytest.fixture
def booking(db, catalog, customer, provider):
    return make_booking(db, customer, provider, catalog.area, catalog.services, status=BookingStatus.ACTIVE)


class TestSendMessage:
    def test_customer_to_provider(self, db, message_service, booking, customer, provider, transport):
        payload = message_service.send_message(customer, booking.id, "  Is 10am still fine?  ")

        assert payload["content"] == "Is 10am still fine?"
        assert payload["is_mine"] is True
        assert payload["is_read"] is False

        message = db.get(Message, payload["id"])
        assert message.sender_id == customer.id
        assert message.receiver_id == provider.user_id

        notification = db.query(Notification).filter_by(user_id=provider.user_id).one()
        assert notification.type == NotificationType.NEW_MESSAGE.value
        assert notification.message == "Lina Haddad sent you a message."
        assert "new_message" in transport.events_for(provider.user_id)
        assert transport.events_for(customer.id) == []

    def test_receiver_sees_message_as_not_theirs(self, message_service, booking, customer, provider, transport):
        message_service.send_message(customer, booking.id, "Hello")

        pushed = [p for target, p in transport.pushes if p["event"] == "new_message"][0]
        assert pushed["data"]["is_mine"] is False

    def test_provider_to_customer(self, db, message_service, booking, customer, provider):
        payload = message_service.send_message(provider.user, booking.id, "On my way")

        assert db.get(Message, payload["id"]).receiver_id == customer.id

    def test_outsider_cannot_send(self, db, message_service, booking):
        with pytest.raises(ForbiddenException):
            message_service.send_message(make_user(db, "Eaves Dropper"), booking.id, "hi")

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_content(self, message_service, booking, customer, content):
        with pytest.raises(ValidationException):
            message_service.send_message(customer, booking.id, content)

    def test_content_too_long(self, message_service, booking, customer):
        with pytest.raises(ValidationException) as exc_info:
            message_service.send_message(customer, booking.id, "a" * 1001)

        assert exc_info.value.code == "MESSAGE_TOO_LONG"

    def test_cancelled_booking_is_closed(self, db, message_service, catalog, customer, provider):
        cancelled = make_booking(
            db, customer, provider, catalog.area, catalog.services, status=BookingStatus.CANCELLED
        )

        with pytest.raises(InvalidStateException):
            message_service.send_message(customer, cancelled.id, "Why?")
        assert db.query(Message).count() == 0

    def test_unknown_booking(self, message_service, customer):
        with pytest.raises(NotFoundException):
            message_service.send_message(customer, "01J0000000000000000000000X", "hi")


class TestReadingMessages:
    def test_history_marks_only_callers_messages_read(self, db, message_service, booking, customer, provider):
        from_customer = message_service.send_message(customer, booking.id, "Hi")
        from_provider = message_service.send_message(provider.user, booking.id, "Hello")

        history = message_service.get_messages(customer, booking.id)

        assert [m["content"] for m in history] == ["Hi", "Hello"]
        db.expire_all()
        assert db.get(Message, from_provider["id"]).is_read is True
        assert db.get(Message, from_customer["id"]).is_read is False

    def test_mark_read_by_receiver(self, db, message_service, booking, customer, provider, transport):
        sent = message_service.send_message(customer, booking.id, "Hi")

        message_service.mark_read(provider.user, sent["id"])

        assert db.get(Message, sent["id"]).is_read is True
        assert "message_read" in transport.events_for(customer.id)

    def test_sender_cannot_mark_read(self, message_service, booking, customer):
        sent = message_service.send_message(customer, booking.id, "Hi")

        with pytest.raises(ForbiddenException):
            message_service.mark_read(customer, sent["id"])

    def test_mark_read_is_idempotent(self, message_service, booking, customer, provider, transport):
        sent = message_service.send_message(customer, booking.id, "Hi")
        message_service.mark_read(provider.user, sent["id"])
        message_service.mark_read(provider.user, sent["id"])

        assert transport.events_for(customer.id).count("message_read") == 1


class TestDeleteMessage:
    def test_sender_deletes(self, db, message_service, booking, customer, provider, transport):
        sent = message_service.send_message(customer, booking.id, "Wrong chat")

        message_service.delete_message(customer, sent["id"])

        assert db.query(Message).count() == 0
        assert "message_deleted" in transport.events_for(provider.user_id)

    def test_receiver_cannot_delete(self, message_service, booking, customer, provider):
        sent = message_service.send_message(customer, booking.id, "Keep me")

        with pytest.raises(ForbiddenException):
            message_service.delete_message(provider.user, sent["id"])

    def test_unknown_message(self, message_service, customer):
        with pytest.raises(NotFoundException):
            message_service.delete_message(customer, "01J0000000000000000000000X")


class TestConversations:
    def test_most_recent_first_with_unread_counts(
        self, db, message_service, catalog, customer, provider, booking
    ):
        quiet = make_booking(db, customer, provider, catalog.area, catalog.services, status=BookingStatus.ACTIVE)
        message_service.send_message(provider.user, quiet.id, "Old news")
        message_service.send_message(provider.user, booking.id, "First")
        message_service.send_message(provider.user, booking.id, "Latest")
        older = db.query(Message).filter_by(content="Old news").one()
        older.sent_at = utc_now() - timedelta(days=2)
        db.commit()

        conversations = message_service.list_conversations(customer)

        assert [c["booking_id"] for c in conversations] == [booking.id, quiet.id]
        assert conversations[0]["last_message"] == "Latest"
        assert conversations[0]["unread_count"] == 2
        assert conversations[0]["other_party_name"] == "Sami Khalil"
        assert conversations[1]["last_message_formatted_time"] == "2 days ago"

    def test_bookings_without_messages_are_not_conversations(self, message_service, booking, customer):
        assert message_service.list_conversations(customer) == []
