# backend/marketplace/services/subscription_service.py
"""
Subscription Service.

A provider is bookable while any subscription window covers "now". New
windows are appended after the latest unexpired one, so paying early never
loses days. Payment capture happens elsewhere; ``activate`` is called once a
payment has been confirmed.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import math
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..core.timezone_utils import utc_now
from ..models.subscription import Subscription, SubscriptionPlan
from ..repositories.factory import RepositoryFactory
from ..repositories.provider_repository import ProviderRepository
from ..repositories.subscription_repository import SubscriptionPlanRepository, SubscriptionRepository
from .base import BaseService

logger = logging.getLogger(__name__)

FREE_TRIAL_PLAN_NAME = "Free Trial"


@dataclass
class SubscriptionStatus:
    provider_id: str
    has_active_subscription: bool
    plan_name: Optional[str]
    expiry_date: Optional[datetime]
    days_remaining: int
    is_provider_active: bool


class SubscriptionService(BaseService):
    def __init__(
        self,
        db: Session,
        subscription_repository: Optional[SubscriptionRepository] = None,
        plan_repository: Optional[SubscriptionPlanRepository] = None,
        provider_repository: Optional[ProviderRepository] = None,
    ):
        super().__init__(db)
        self.repository = subscription_repository or RepositoryFactory.create_subscription_repository(db)
        self.plan_repository = plan_repository or RepositoryFactory.create_subscription_plan_repository(db)
        self.provider_repository = provider_repository or RepositoryFactory.create_provider_repository(db)

    def list_plans(self) -> List[SubscriptionPlan]:
        return self.plan_repository.list_ordered()

    @BaseService.measure_operation("get_subscription_status")
    def get_status(self, provider_id: str, now: Optional[datetime] = None) -> SubscriptionStatus:
        provider = self.provider_repository.get_by_id(provider_id, load_relationships=False)
        if provider is None:
            raise NotFoundException("Provider not found", details={"provider_id": provider_id})

        now = now or utc_now()
        current = self.repository.get_latest_active(provider_id, now)
        if current is None:
            return SubscriptionStatus(
                provider_id=provider_id,
                has_active_subscription=False,
                plan_name=None,
                expiry_date=None,
                days_remaining=0,
                is_provider_active=provider.is_active,
            )
        remaining = (current.end_date - now).total_seconds() / 86400
        return SubscriptionStatus(
            provider_id=provider_id,
            has_active_subscription=True,
            plan_name=current.plan.name if current.plan else FREE_TRIAL_PLAN_NAME,
            expiry_date=current.end_date,
            days_remaining=max(0, math.ceil(remaining)),
            is_provider_active=provider.is_active,
        )

    @BaseService.measure_operation("activate_subscription")
    def activate(
        self, provider_id: str, plan_id: str, payment_reference: Optional[str] = None
    ) -> Subscription:
        """Append a paid window of the plan's length for a confirmed payment."""
        if self.provider_repository.get_by_id(provider_id, load_relationships=False) is None:
            raise NotFoundException("Provider not found", details={"provider_id": provider_id})
        plan = self.plan_repository.get_by_id(plan_id)
        if plan is None:
            raise NotFoundException("Subscription plan not found.", details={"plan_id": plan_id})

        with self.transaction():
            subscription = self.extend(
                provider_id, plan.duration_in_days, plan=plan, payment_reference=payment_reference
            )
        self.log_operation(
            "activate_subscription",
            provider_id=provider_id,
            plan_id=plan.id,
            end_date=subscription.end_date.isoformat(),
        )
        return subscription

    def grant_free_trial(self, provider_id: str) -> Subscription:
        """Trial window for a newly approved provider. Runs in the caller's transaction."""
        return self.extend(provider_id, settings.free_trial_days)

    def extend(
        self,
        provider_id: str,
        days: int,
        plan: Optional[SubscriptionPlan] = None,
        payment_reference: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Subscription:
        now = now or utc_now()
        latest = self.repository.get_latest_active(provider_id, now)
        start = latest.end_date if latest is not None else now
        return self.repository.create(
            provider_id=provider_id,
            plan_id=plan.id if plan else None,
            start_date=start,
            end_date=start + timedelta(days=days),
            payment_reference=payment_reference,
        )
