# backend/marketplace/schemas/subscription.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from ..models.subscription import Subscription, SubscriptionPlan
from ..services.formatting import format_currency
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel


class SubscriptionPlanResponse(StandardizedModel):
    id: str
    name: str
    price: Money
    formatted_price: str
    duration_in_days: int
    description: Optional[str] = None

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "SubscriptionPlanResponse":
        return cls(
            id=plan.id,
            name=plan.name,
            price=plan.price,
            formatted_price=format_currency(plan.price),
            duration_in_days=plan.duration_in_days,
            description=plan.description,
        )


class SubscriptionStatusResponse(StandardizedModel):
    provider_id: str
    has_active_subscription: bool
    plan_name: Optional[str] = None
    expiry_date: Optional[datetime] = None
    days_remaining: int
    is_provider_active: bool


class SubscriptionActivate(StrictRequestModel):
    provider_id: str = Field(..., min_length=1)
    plan_id: str = Field(..., min_length=1)
    payment_reference: Optional[str] = Field(default=None, max_length=255)


class SubscriptionResponse(StandardizedModel):
    id: str
    provider_id: str
    plan_id: Optional[str] = None
    start_date: datetime
    end_date: datetime

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls.model_validate(subscription)
