from datetime import timedelta

import pytest

from marketplace.core.config import settings
from marketplace.core.exceptions import NotFoundException
from marketplace.core.timezone_utils import utc_now
from marketplace.models.subscription import Subscription
from marketplace.services.subscription_service import FREE_TRIAL_PLAN_NAME, SubscriptionService

from tests.builders import make_plan, make_provider


@pytest.fixture
def subscription_service(db) -> SubscriptionService:
    return SubscriptionService(db)


@pytest.fixture
def unsubscribed(db, catalog):
    return make_provider(db, catalog, "New Provider", subscribed=False)


class TestExtend:
    def test_starts_now_without_active_window(self, db, subscription_service, unsubscribed):
        now = utc_now()

        subscription = subscription_service.extend(unsubscribed.user_id, 30, now=now)
        db.commit()

        assert subscription.start_date == now
        assert subscription.end_date == now + timedelta(days=30)

    def test_stacks_on_the_latest_active_window(self, db, subscription_service, unsubscribed):
        now = utc_now()
        current = subscription_service.extend(unsubscribed.user_id, 10, now=now)
        db.commit()

        renewal = subscription_service.extend(unsubscribed.user_id, 30, now=now)
        db.commit()

        assert renewal.start_date == current.end_date
        assert renewal.end_date == now + timedelta(days=40)

    def test_expired_window_is_not_extended(self, db, subscription_service, unsubscribed):
        now = utc_now()
        db.add(
            Subscription(
                provider_id=unsubscribed.user_id,
                start_date=now - timedelta(days=60),
                end_date=now - timedelta(days=30),
            )
        )
        db.commit()

        renewal = subscription_service.extend(unsubscribed.user_id, 30, now=now)

        assert renewal.start_date == now


class TestStatus:
    def test_no_subscription(self, subscription_service, unsubscribed):
        status = subscription_service.get_status(unsubscribed.user_id)

        assert status.has_active_subscription is False
        assert status.plan_name is None
        assert status.days_remaining == 0
        assert status.is_provider_active is True

    def test_trial_window(self, db, subscription_service, unsubscribed):
        subscription_service.grant_free_trial(unsubscribed.user_id)
        db.commit()

        status = subscription_service.get_status(unsubscribed.user_id)

        assert status.has_active_subscription is True
        assert status.plan_name == FREE_TRIAL_PLAN_NAME
        assert status.days_remaining == settings.free_trial_days

    def test_days_remaining_rounds_up(self, db, subscription_service, unsubscribed):
        now = utc_now()
        db.add(
            Subscription(
                provider_id=unsubscribed.user_id,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=2, hours=1),
            )
        )
        db.commit()

        assert subscription_service.get_status(unsubscribed.user_id, now=now).days_remaining == 3

    def test_unknown_provider(self, subscription_service):
        with pytest.raises(NotFoundException):
            subscription_service.get_status("01J0000000000000000000000X")


class TestActivate:
    def test_paid_plan(self, db, subscription_service, unsubscribed):
        plan = make_plan(db, "Quarterly", "25.00", 90)

        subscription = subscription_service.activate(unsubscribed.user_id, plan.id, "PAY-123")

        assert subscription.plan_id == plan.id
        assert subscription.payment_reference == "PAY-123"
        assert subscription.end_date - subscription.start_date == timedelta(days=90)
        assert subscription_service.get_status(unsubscribed.user_id).plan_name == "Quarterly"

    def test_unknown_plan(self, subscription_service, unsubscribed):
        with pytest.raises(NotFoundException):
            subscription_service.activate(unsubscribed.user_id, "01J0000000000000000000000X")

    def test_unknown_provider(self, db, subscription_service):
        plan = make_plan(db)

        with pytest.raises(NotFoundException):
            subscription_service.activate("01J0000000000000000000000X", plan.id)

    def test_list_plans(self, db, subscription_service):
        make_plan(db, "Monthly", "10.00", 30)
        make_plan(db, "Yearly", "100.00", 365)

        assert {plan.name for plan in subscription_service.list_plans()} == {"Monthly", "Yearly"}
