"""
BookingService state machine: creation, provider transitions, cancellation
and reassignment, including the notifications each transition leaves behind.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from marketplace.core.enums import BookingRole, BookingStatus, NotificationType
from marketplace.core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NoProviderAvailableException,
    NoReplacementProviderException,
    NotFoundException,
    ProviderQueryTimeoutException,
)
from marketplace.models.booking import Booking
from marketplace.models.notification import Notification
from marketplace.repositories.provider_repository import ProviderRepository
from marketplace.schemas.booking import BookingCreate
from marketplace.services.booking_service import BookingService
from marketplace.services.catalog_service import CatalogService
from marketplace.services.file_storage import AttachmentUpload
from marketplace.services.notification_service import NotificationService
from marketplace.services.provider_matching_service import ProviderMatchingService
from marketplace.services.provider_selection import FirstProviderSelector

from tests.builders import future_slot, make_booking, make_provider, make_user
from tests.conftest import FailingTransport


def _request(catalog, scheduled_at=None, services=None, area=None) -> BookingCreate:
    return BookingCreate(
        service_ids=[service.id for service in (services or catalog.services)],
        service_area_id=(area or catalog.area).id,
        scheduled_at=scheduled_at or future_slot(),
        address="12 Rainbow Street, Amman",
        latitude=31.95,
        longitude=35.91,
        notes="Ring the bell twice",
    )


def _notifications(db, user_id):
    return db.query(Notification).filter(Notification.user_id == user_id).all()


def _scope(booking):
    return (booking.service_area_id, booking.scheduled_at, sorted(booking.service_ids), booking.total_amount)


class QueryCanceled(Exception):
    pgcode = "57014"


class RecordingStorage:
    def __init__(self):
        self.stored = []
        self.deleted = []

    def store(self, filename, content_type, data):
        reference = f"mem://{filename}"
        self.stored.append(reference)
        return reference

    def delete(self, reference):
        self.deleted.append(reference)


class TestCreateBooking:
    def test_creates_pending_booking_for_matched_provider(
        self, db, booking_service, catalog, customer, provider, transport
    ):
        booking = booking_service.create_booking(customer, _request(catalog))

        assert booking.status == BookingStatus.PENDING.value
        assert booking.service_provider_id == provider.user_id
        assert booking.customer_id == customer.id
        assert booking.total_amount == Decimal("40.50")
        assert booking.total_estimated_hours == Decimal("3.00")
        assert booking.scheduled_end_at - booking.scheduled_at == timedelta(hours=3)

        notifications = _notifications(db, provider.user_id)
        assert [n.type for n in notifications] == [NotificationType.BOOKING_CREATED.value]
        assert notifications[0].booking_id == booking.id
        assert transport.events_for(provider.user_id) == ["notification", "booking_updated"]

    def test_claims_the_provider_row(self, db, booking_service, catalog, customer, provider):
        version_before = provider.version_id

        booking_service.create_booking(customer, _request(catalog))
        db.refresh(provider)

        assert provider.last_assigned_at is not None
        assert provider.version_id == version_before + 1

    def test_line_items_snapshot_prices(self, db, booking_service, catalog, customer, provider):
        booking = booking_service.create_booking(customer, _request(catalog))

        CatalogService(db).update_service_price(catalog.cleaning.id, Decimal("99.00"))
        db.expire_all()
        reloaded = db.get(Booking, booking.id)

        prices = {item.service_id: item.price_at_booking for item in reloaded.items}
        assert prices[catalog.cleaning.id] == Decimal("25.00")
        assert reloaded.total_amount == Decimal("40.50")

    def test_no_eligible_provider(self, db, booking_service, catalog, customer, transport):
        with pytest.raises(NoProviderAvailableException) as exc_info:
            booking_service.create_booking(customer, _request(catalog))

        assert exc_info.value.code == "NO_PROVIDER_AVAILABLE"
        assert db.query(Booking).count() == 0
        assert transport.pushes == []

    def test_provider_cannot_book_themselves(self, db, booking_service, catalog, provider):
        with pytest.raises(NoProviderAvailableException):
            booking_service.create_booking(provider.user, _request(catalog))

    def test_unknown_area(self, booking_service, catalog, customer, provider):
        data = _request(catalog)
        data.service_area_id = "01J0000000000000000000000X"

        with pytest.raises(NotFoundException):
            booking_service.create_booking(customer, data)

    def test_inactive_service_is_not_bookable(self, db, booking_service, catalog, customer, provider):
        catalog.plumbing.is_active = False
        db.commit()

        with pytest.raises(NotFoundException) as exc_info:
            booking_service.create_booking(customer, _request(catalog))

        assert exc_info.value.details["service_ids"] == [catalog.plumbing.id]

    def test_busy_provider_is_skipped(
        self, db, booking_service, catalog, customer, other_customer, provider, second_provider
    ):
        slot = future_slot(hour=11)
        first = booking_service.create_booking(customer, _request(catalog, scheduled_at=slot))
        second = booking_service.create_booking(other_customer, _request(catalog, scheduled_at=slot))

        assert {first.service_provider_id, second.service_provider_id} == {
            provider.user_id,
            second_provider.user_id,
        }

    def test_attachments_are_recorded(self, db, notification_service, matching_service, catalog, customer, provider):
        storage = RecordingStorage()
        service = BookingService(
            db,
            notification_service=notification_service,
            matching_service=matching_service,
            file_storage=storage,
        )
        uploads = [
            AttachmentUpload("leak.jpg", "image/jpeg", b"jpeg-bytes"),
            AttachmentUpload("noise.m4a", "audio/mp4", b"audio-bytes"),
        ]

        booking = service.create_booking(customer, _request(catalog), uploads)

        kinds = sorted(attachment.kind for attachment in booking.attachments)
        assert kinds == ["audio", "image"]
        assert storage.deleted == []

    def test_stored_attachments_are_removed_when_nobody_is_available(
        self, db, notification_service, matching_service, catalog, customer
    ):
        storage = RecordingStorage()
        service = BookingService(
            db,
            notification_service=notification_service,
            matching_service=matching_service,
            file_storage=storage,
        )

        with pytest.raises(NoProviderAvailableException):
            service.create_booking(
                customer, _request(catalog), [AttachmentUpload("leak.png", "image/png", b"png")]
            )

        assert storage.deleted == storage.stored == ["mem://leak.png"]

    def test_push_failure_does_not_fail_the_booking(self, db, catalog, customer, provider):
        service = BookingService(
            db,
            notification_service=NotificationService(db, transport=FailingTransport()),
            matching_service=ProviderMatchingService(db, selector=FirstProviderSelector()),
        )

        booking = service.create_booking(customer, _request(catalog))

        assert booking.status == BookingStatus.PENDING.value
        assert len(_notifications(db, provider.user_id)) == 1


@pytest.fixture
def pending_booking(db, catalog, customer, provider):
    return make_booking(db, customer, provider, catalog.area, catalog.services)


@pytest.fixture
def active_booking(db, catalog, customer, provider):
    return make_booking(db, customer, provider, catalog.area, catalog.services, status=BookingStatus.ACTIVE)


class TestAcceptAndComplete:
    def test_accept(self, db, booking_service, pending_booking, provider, customer, transport):
        booking = booking_service.accept_booking(pending_booking.id, provider.user)

        assert booking.status == BookingStatus.ACTIVE.value
        notification = _notifications(db, customer.id)[0]
        assert notification.type == NotificationType.BOOKING_ACCEPTED.value
        assert notification.message == "Your booking has been accepted by Sami Khalil."
        assert "notification" in transport.events_for(customer.id)

    def test_only_assigned_provider_can_accept(self, booking_service, pending_booking, second_provider, customer):
        with pytest.raises(ForbiddenException):
            booking_service.accept_booking(pending_booking.id, second_provider.user)
        with pytest.raises(ForbiddenException):
            booking_service.accept_booking(pending_booking.id, customer)

    def test_accept_twice(self, booking_service, active_booking, provider):
        with pytest.raises(InvalidStateException) as exc_info:
            booking_service.accept_booking(active_booking.id, provider.user)

        assert exc_info.value.details == {"current_status": "active"}

    def test_complete_requires_active(self, booking_service, pending_booking, provider):
        with pytest.raises(InvalidStateException):
            booking_service.complete_booking(pending_booking.id, provider.user)

    def test_complete(self, db, booking_service, active_booking, provider, customer):
        booking = booking_service.complete_booking(active_booking.id, provider.user)

        assert booking.status == BookingStatus.COMPLETED.value
        assert booking.completed_at is not None
        assert _notifications(db, customer.id)[0].type == NotificationType.BOOKING_COMPLETED.value

    def test_unknown_booking(self, booking_service, provider):
        with pytest.raises(NotFoundException):
            booking_service.accept_booking("01J0000000000000000000000X", provider.user)


class TestTerminalStates:
    @pytest.mark.parametrize("status", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_no_transition_leaves_a_terminal_state(self, db, booking_service, catalog, customer, provider, status):
        booking = make_booking(db, customer, provider, catalog.area, catalog.services, status=status)

        for transition, actor in (
            (booking_service.accept_booking, provider.user),
            (booking_service.complete_booking, provider.user),
            (booking_service.reject_booking, provider.user),
            (booking_service.cancel_booking, customer),
            (booking_service.cancel_booking, provider.user),
        ):
            with pytest.raises(InvalidStateException):
                transition(booking.id, actor)

        db.expire_all()
        assert db.get(Booking, booking.id).status == status.value


class TestReject:
    def test_reassigns_to_another_provider(
        self, db, booking_service, pending_booking, provider, second_provider, customer, transport
    ):
        before = _scope(pending_booking)

        booking = booking_service.reject_booking(pending_booking.id, provider.user)

        assert booking.status == BookingStatus.PENDING.value
        assert booking.service_provider_id == second_provider.user_id
        db.expire_all()
        assert _scope(db.get(Booking, booking.id)) == before
        assert [n.type for n in _notifications(db, second_provider.user_id)] == [
            NotificationType.BOOKING_CREATED.value
        ]
        assert [n.type for n in _notifications(db, customer.id)] == [
            NotificationType.BOOKING_REASSIGNED_AFTER_REJECTED.value
        ]
        assert _notifications(db, provider.user_id) == []
        assert "booking_updated" in transport.events_for(second_provider.user_id)

    def test_no_replacement_keeps_booking_with_provider(self, db, booking_service, pending_booking, provider):
        with pytest.raises(NoProviderAvailableException):
            booking_service.reject_booking(pending_booking.id, provider.user)

        db.expire_all()
        booking = db.get(Booking, pending_booking.id)
        assert booking.service_provider_id == provider.user_id
        assert booking.status == BookingStatus.PENDING.value

    def test_query_timeout_is_transient_and_keeps_booking(
        self, db, booking_service, pending_booking, provider, second_provider, monkeypatch
    ):
        def cancelled_query(self, criteria):
            raise OperationalError("SELECT service_providers", {}, QueryCanceled("canceling statement"))

        monkeypatch.setattr(ProviderRepository, "build_eligibility_query", cancelled_query)

        with pytest.raises(ProviderQueryTimeoutException) as exc_info:
            booking_service.reject_booking(pending_booking.id, provider.user)

        assert exc_info.value.code == "PROVIDER_QUERY_TIMEOUT"
        assert exc_info.value.to_http_exception().status_code == 503
        db.expire_all()
        booking = db.get(Booking, pending_booking.id)
        assert booking.service_provider_id == provider.user_id
        assert booking.status == BookingStatus.PENDING.value

    def test_cannot_reject_active_booking(self, booking_service, active_booking, provider, second_provider):
        with pytest.raises(InvalidStateException):
            booking_service.reject_booking(active_booking.id, provider.user)

    def test_replacement_must_cover_the_booking(
        self, db, booking_service, catalog, pending_booking, provider
    ):
        make_provider(db, catalog, "Cleaner Only", services=[catalog.cleaning])
        make_provider(db, catalog, "Irbid Only", areas=[catalog.other_area])

        with pytest.raises(NoProviderAvailableException):
            booking_service.reject_booking(pending_booking.id, provider.user)


class TestCancel:
    def test_customer_cancel_is_final(self, db, booking_service, active_booking, customer, provider):
        booking = booking_service.cancel_booking(active_booking.id, customer)

        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.cancelled_at is not None
        notification = _notifications(db, provider.user_id)[0]
        assert notification.type == NotificationType.BOOKING_CANCELLED_BY_USER.value
        assert notification.message == "Booking cancelled by Lina Haddad."

    def test_provider_cancel_hands_over(
        self, db, booking_service, active_booking, provider, second_provider, customer
    ):
        before = _scope(active_booking)

        booking = booking_service.cancel_booking(active_booking.id, provider.user)

        assert booking.status == BookingStatus.PENDING.value
        assert booking.service_provider_id == second_provider.user_id
        assert booking.cancelled_at is None
        db.expire_all()
        assert _scope(db.get(Booking, booking.id)) == before
        notification = _notifications(db, customer.id)[0]
        assert notification.type == NotificationType.BOOKING_REASSIGNED_AFTER_CANCELLED.value
        assert "Sami Khalil" in notification.message

    def test_cancel_then_reject_keeps_scope(
        self, db, catalog, booking_service, active_booking, provider, second_provider
    ):
        make_provider(db, catalog, "Hani Odeh")
        before = _scope(active_booking)

        booking_service.cancel_booking(active_booking.id, provider.user)
        booking = booking_service.reject_booking(active_booking.id, second_provider.user)

        assert booking.status == BookingStatus.PENDING.value
        assert booking.service_provider_id != second_provider.user_id
        db.expire_all()
        assert _scope(db.get(Booking, active_booking.id)) == before

    def test_provider_cancel_without_replacement(self, db, booking_service, active_booking, provider, customer):
        with pytest.raises(NoReplacementProviderException) as exc_info:
            booking_service.cancel_booking(active_booking.id, provider.user)

        assert exc_info.value.message == "You cannot cancel, no replacement found"
        db.expire_all()
        booking = db.get(Booking, active_booking.id)
        assert booking.status == BookingStatus.ACTIVE.value
        assert booking.service_provider_id == provider.user_id
        assert _notifications(db, customer.id) == []

    def test_stranger_cannot_cancel(self, db, booking_service, pending_booking):
        stranger = make_user(db, "Nobody Here")

        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(pending_booking.id, stranger)


class TestReads:
    def test_list_by_role(self, db, booking_service, catalog, customer, provider):
        older = make_booking(db, customer, provider, catalog.area, catalog.services)
        newer = make_booking(db, customer, provider, catalog.area, catalog.services)

        as_customer = booking_service.list_bookings(customer, BookingRole.CUSTOMER)
        as_provider = booking_service.list_bookings(provider.user, BookingRole.SERVICE_PROVIDER)

        assert [b.id for b in as_customer] == [newer.id, older.id]
        assert {b.id for b in as_provider} == {older.id, newer.id}
        assert booking_service.list_bookings(customer, BookingRole.SERVICE_PROVIDER) == []

    def test_get_booking_participants_and_admin(self, db, booking_service, pending_booking, customer, admin):
        assert booking_service.get_booking(pending_booking.id, customer).id == pending_booking.id
        assert booking_service.get_booking(pending_booking.id, admin).id == pending_booking.id

        with pytest.raises(ForbiddenException):
            booking_service.get_booking(pending_booking.id, make_user(db, "Someone Else"))


def test_scheduled_time_must_be_in_the_future(catalog):
    with pytest.raises(ValueError):
        _request(catalog, scheduled_at=datetime(2001, 1, 1, 10, 0))
