# backend/marketplace/models/subscription.py
from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(100), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
    duration_in_days = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)


class Subscription(Base):
    """
    A paid (or trial) window during which a provider is bookable.

    ``plan_id`` is NULL for the free trial granted on approval.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (Index("ix_subscriptions_provider_end", "provider_id", "end_date"),)

    id = Column(String(26), primary_key=True, default=generate_ulid)
    provider_id = Column(
        String(26), ForeignKey("service_providers.user_id", ondelete="CASCADE"), nullable=False
    )
    plan_id = Column(String(26), ForeignKey("subscription_plans.id"), nullable=True)
    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)
    payment_reference = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    provider = relationship("ServiceProvider", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan")
