"""
Two customers racing for the same provider.

The competing transaction is committed from a second session at the moment
the first one has picked its provider but not yet written anything, which is
the window a real concurrent request would hit.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from marketplace.core.enums import BookingStatus
from marketplace.core.exceptions import BookingConflictException, NoProviderAvailableException
from marketplace.models.booking import Booking
from marketplace.models.provider import ServiceProvider
from marketplace.schemas.booking import BookingCreate
from marketplace.services.booking_service import BookingService
from marketplace.services.notification_service import NotificationService
from marketplace.services.provider_matching_service import ProviderMatchingService
from marketplace.services.provider_selection import FirstProviderSelector

from tests.builders import future_slot

pytestmark = pytest.mark.concurrency


class RacingSelector(FirstProviderSelector):
    """Lets a competing booking claim the chosen provider before returning it."""

    def __init__(self, session_factory, competitor, catalog, slot, races: int = 1):
        self.session_factory = session_factory
        self.slot = slot
        self.competitor = competitor
        self.catalog = catalog
        self.races_left = races
        self.choices = []

    def choose(self, candidates):
        chosen = super().choose(candidates)
        self.choices.append(chosen.user_id)
        if self.races_left > 0:
            self.races_left -= 1
            self._book_in_other_session(chosen.user_id)
        return chosen

    def _book_in_other_session(self, provider_id):
        with self.session_factory() as other:
            provider = other.get(ServiceProvider, provider_id)
            ProviderMatchingService.claim(provider)
            other.add(
                Booking(
                    customer_id=self.competitor.id,
                    service_provider_id=provider_id,
                    service_area_id=self.catalog.area.id,
                    status=BookingStatus.PENDING.value,
                    scheduled_at=self.slot,
                    scheduled_end_at=self.slot + timedelta(hours=3),
                    total_amount=Decimal("40.50"),
                    total_estimated_hours=Decimal("3.00"),
                    address="Competing address",
                    latitude=31.9,
                    longitude=35.9,
                )
            )
            other.commit()


def _service(db, selector):
    return BookingService(
        db,
        notification_service=NotificationService(db),
        matching_service=ProviderMatchingService(db, selector=selector),
    )


def _request(catalog, slot):
    return BookingCreate(
        service_ids=[service.id for service in catalog.services],
        service_area_id=catalog.area.id,
        scheduled_at=slot,
        address="12 Rainbow Street",
        latitude=31.95,
        longitude=35.91,
    )


def test_losing_a_race_retries_with_the_next_provider(
    db, session_factory, catalog, customer, other_customer, provider, second_provider
):
    slot = future_slot(hour=9)
    selector = RacingSelector(session_factory, other_customer, catalog, slot)

    booking = _service(db, selector).create_booking(customer, _request(catalog, slot))

    assert selector.choices == [provider.user_id, second_provider.user_id]
    assert booking.service_provider_id == second_provider.user_id

    with session_factory() as check:
        holders = [
            b.service_provider_id
            for b in check.query(Booking).filter(Booking.scheduled_at == slot).all()
        ]
    assert sorted(holders) == sorted([provider.user_id, second_provider.user_id])


def test_losing_a_race_for_the_only_provider(
    db, session_factory, catalog, customer, other_customer, provider
):
    slot = future_slot(hour=9)
    selector = RacingSelector(session_factory, other_customer, catalog, slot)

    with pytest.raises(NoProviderAvailableException):
        _service(db, selector).create_booking(customer, _request(catalog, slot))

    with session_factory() as check:
        bookings = check.query(Booking).all()
    assert [b.customer_id for b in bookings] == [other_customer.id]


def test_gives_up_after_configured_attempts(
    db, session_factory, catalog, customer, other_customer, provider, monkeypatch
):
    """With the busy filter off, every retry picks the same provider and loses again."""
    from marketplace.core.config import settings

    monkeypatch.setattr(settings, "booking_exclude_busy_providers", False)
    monkeypatch.setattr(settings, "booking_assignment_max_attempts", 2)
    slot = future_slot(hour=9)
    selector = RacingSelector(session_factory, other_customer, catalog, slot, races=2)

    with pytest.raises(BookingConflictException):
        _service(db, selector).create_booking(customer, _request(catalog, slot))

    assert selector.choices == [provider.user_id, provider.user_id]
