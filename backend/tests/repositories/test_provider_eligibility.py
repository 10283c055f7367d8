"""
Provider eligibility query, stage by stage.

Each test builds one provider that fails exactly one rule next to one that
passes, so a regression in a single stage shows up on its own.
"""

from datetime import time, timedelta

import pytest

from marketplace.core.enums import BookingStatus
from marketplace.core.timezone_utils import utc_now
from marketplace.models.provider import ServiceProvider
from marketplace.models.subscription import Subscription
from marketplace.repositories.provider_repository import EligibilityCriteria, ProviderRepository

from tests.builders import make_booking, make_provider, next_weekday, weekly_schedule


def _criteria(catalog, scheduled_at, **overrides) -> EligibilityCriteria:
    values = dict(
        area_id=catalog.area.id,
        service_ids=tuple(service.id for service in catalog.services),
        scheduled_at=scheduled_at,
        now=utc_now(),
    )
    values.update(overrides)
    return EligibilityCriteria(**values)


def _eligible_ids(db, criteria):
    return [provider.user_id for provider in ProviderRepository(db).find_eligible(criteria)]


@pytest.fixture
def monday_10am():
    return next_weekday(0, hour=10)


class TestActiveStage:
    def test_inactive_provider_is_skipped(self, db, catalog, provider, monday_10am):
        off_duty = make_provider(db, catalog, "Off Duty", is_active=False)

        eligible = _eligible_ids(db, _criteria(catalog, monday_10am))

        assert provider.user_id in eligible
        assert off_duty.user_id not in eligible

    def test_stage_filters_on_its_own(self, db, catalog, provider):
        make_provider(db, catalog, "Off Duty", is_active=False)

        query = ProviderRepository.filter_active(db.query(ServiceProvider))

        assert [p.user_id for p in query.all()] == [provider.user_id]


class TestSubscriptionStage:
    def test_provider_without_subscription_is_skipped(self, db, catalog, provider, monday_10am):
        unpaid = make_provider(db, catalog, "Unpaid", subscribed=False)

        eligible = _eligible_ids(db, _criteria(catalog, monday_10am))

        assert unpaid.user_id not in eligible
        assert provider.user_id in eligible

    def test_expired_subscription_does_not_count(self, db, catalog, monday_10am):
        lapsed = make_provider(db, catalog, "Lapsed", subscribed=False)
        now = utc_now()
        db.add(
            Subscription(
                provider_id=lapsed.user_id,
                start_date=now - timedelta(days=40),
                end_date=now - timedelta(days=10),
            )
        )
        db.commit()

        assert _eligible_ids(db, _criteria(catalog, monday_10am)) == []

    def test_any_unexpired_subscription_is_enough(self, db, catalog, monday_10am):
        renewed = make_provider(db, catalog, "Renewed", subscribed=False)
        now = utc_now()
        db.add_all(
            [
                Subscription(
                    provider_id=renewed.user_id,
                    start_date=now - timedelta(days=60),
                    end_date=now - timedelta(days=30),
                ),
                Subscription(
                    provider_id=renewed.user_id,
                    start_date=now - timedelta(days=1),
                    end_date=now + timedelta(days=1),
                ),
            ]
        )
        db.commit()

        assert _eligible_ids(db, _criteria(catalog, monday_10am)) == [renewed.user_id]


class TestAreaStage:
    def test_provider_in_other_area_is_skipped(self, db, catalog, provider, monday_10am):
        elsewhere = make_provider(db, catalog, "Irbid Only", areas=[catalog.other_area])

        eligible = _eligible_ids(db, _criteria(catalog, monday_10am))

        assert elsewhere.user_id not in eligible
        assert _eligible_ids(db, _criteria(catalog, monday_10am, area_id=catalog.other_area.id)) == [
            elsewhere.user_id
        ]


class TestServicesStage:
    def test_provider_must_offer_every_requested_service(self, db, catalog, provider, monday_10am):
        cleaner = make_provider(db, catalog, "Cleaner Only", services=[catalog.cleaning])

        both = _eligible_ids(db, _criteria(catalog, monday_10am))
        cleaning_only = _eligible_ids(
            db, _criteria(catalog, monday_10am, service_ids=(catalog.cleaning.id,))
        )

        assert cleaner.user_id not in both
        assert set(cleaning_only) == {provider.user_id, cleaner.user_id}


class TestScheduleStage:
    def test_wrong_weekday_is_skipped(self, db, catalog, monday_10am):
        weekend = make_provider(db, catalog, "Weekend", schedules=weekly_schedule(days=[5, 6]))

        assert weekend.user_id not in _eligible_ids(db, _criteria(catalog, monday_10am))
        saturday = next_weekday(5, hour=10)
        assert _eligible_ids(db, _criteria(catalog, saturday)) == [weekend.user_id]

    def test_time_outside_window_is_skipped(self, db, catalog):
        make_provider(db, catalog, "Mornings", schedules=weekly_schedule(window=(time(8), time(12))))

        assert _eligible_ids(db, _criteria(catalog, next_weekday(0, hour=15))) == []

    @pytest.mark.parametrize("hour,minute", [(8, 0), (12, 0)])
    def test_window_bounds_are_inclusive(self, db, catalog, hour, minute):
        mornings = make_provider(
            db, catalog, "Mornings", schedules=weekly_schedule(window=(time(8), time(12)))
        )

        scheduled_at = next_weekday(2, hour=hour, minute=minute)

        assert _eligible_ids(db, _criteria(catalog, scheduled_at)) == [mornings.user_id]


class TestExclusionStage:
    def test_customer_is_never_matched_to_themselves(self, db, catalog, provider, monday_10am):
        eligible = _eligible_ids(db, _criteria(catalog, monday_10am, customer_id=provider.user_id))

        assert provider.user_id not in eligible

    def test_explicit_exclusions(self, db, catalog, provider, second_provider, monday_10am):
        eligible = _eligible_ids(
            db,
            _criteria(catalog, monday_10am, exclude_provider_ids=frozenset({provider.user_id})),
        )

        assert eligible == [second_provider.user_id]


class TestBusyStage:
    def test_overlapping_open_booking_blocks_provider(
        self, db, catalog, customer, provider, second_provider, monday_10am
    ):
        make_booking(db, customer, provider, catalog.area, [catalog.cleaning], scheduled_at=monday_10am)

        criteria = _criteria(
            catalog,
            monday_10am + timedelta(minutes=30),
            scheduled_end_at=monday_10am + timedelta(hours=2),
            exclude_busy=True,
        )

        assert _eligible_ids(db, criteria) == [second_provider.user_id]

    def test_busy_filter_is_optional(self, db, catalog, customer, provider, monday_10am):
        make_booking(db, customer, provider, catalog.area, [catalog.cleaning], scheduled_at=monday_10am)

        criteria = _criteria(
            catalog, monday_10am, scheduled_end_at=monday_10am + timedelta(hours=1), exclude_busy=False
        )

        assert _eligible_ids(db, criteria) == [provider.user_id]

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    def test_closed_bookings_do_not_block(self, db, catalog, customer, provider, monday_10am, status):
        make_booking(
            db, customer, provider, catalog.area, [catalog.cleaning], scheduled_at=monday_10am, status=status
        )

        criteria = _criteria(
            catalog, monday_10am, scheduled_end_at=monday_10am + timedelta(hours=1), exclude_busy=True
        )

        assert _eligible_ids(db, criteria) == [provider.user_id]

    def test_back_to_back_slots_do_not_overlap(self, db, catalog, customer, provider, monday_10am):
        booking = make_booking(
            db, customer, provider, catalog.area, [catalog.plumbing], scheduled_at=monday_10am
        )

        criteria = _criteria(
            catalog,
            booking.scheduled_end_at,
            scheduled_end_at=booking.scheduled_end_at + timedelta(hours=1),
            exclude_busy=True,
        )

        assert _eligible_ids(db, criteria) == [provider.user_id]

    def test_booking_being_reassigned_does_not_block_itself(
        self, db, catalog, customer, provider, monday_10am
    ):
        booking = make_booking(
            db, customer, provider, catalog.area, [catalog.cleaning], scheduled_at=monday_10am
        )

        criteria = _criteria(
            catalog,
            monday_10am,
            scheduled_end_at=booking.scheduled_end_at,
            exclude_busy=True,
            exclude_booking_id=booking.id,
        )

        assert _eligible_ids(db, criteria) == [provider.user_id]


def test_results_are_ordered_by_provider_id(db, catalog, provider, second_provider, monday_10am):
    eligible = _eligible_ids(db, _criteria(catalog, monday_10am))

    assert eligible == sorted([provider.user_id, second_provider.user_id])
