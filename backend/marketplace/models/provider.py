# backend/marketplace/models/provider.py
"""
Service provider profile, weekly schedule and coverage associations.

The provider row is keyed by its user id, so ``Booking.service_provider_id``
is also the provider's user id.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

provider_services = Table(
    "provider_services",
    Base.metadata,
    Column(
        "provider_id",
        String(26),
        ForeignKey("service_providers.user_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("service_id", String(26), ForeignKey("services.id"), primary_key=True, index=True),
)

provider_service_areas = Table(
    "provider_service_areas",
    Base.metadata,
    Column(
        "provider_id",
        String(26),
        ForeignKey("service_providers.user_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("area_id", String(26), ForeignKey("service_areas.id"), primary_key=True, index=True),
)


class ServiceProvider(Base):
    """
    A user able to fulfil bookings.

    ``version_id`` is an optimistic row version: every assignment stamps
    ``last_assigned_at``, so two transactions assigning the same provider
    cannot both commit.
    """

    __tablename__ = "service_providers"
    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_service_providers_rating"),
    )

    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    last_assigned_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    user = relationship("User", back_populates="provider_profile")
    services = relationship("Service", secondary=provider_services, lazy="selectin")
    service_areas = relationship("ServiceArea", secondary=provider_service_areas, lazy="selectin")
    schedules = relationship(
        "Schedule",
        back_populates="provider",
        cascade="all, delete-orphan",
        order_by="Schedule.day_of_week",
    )
    subscriptions = relationship(
        "Subscription", back_populates="provider", cascade="all, delete-orphan"
    )

    @property
    def id(self) -> str:
        return self.user_id

    @property
    def display_name(self) -> str:
        return self.user.full_name if self.user else ""

    def __repr__(self) -> str:
        return f"<ServiceProvider {self.user_id} active={self.is_active}>"


class Schedule(Base):
    """Weekly recurring working window; ``day_of_week`` follows ``date.weekday()``."""

    __tablename__ = "schedules"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedules_day"),
        CheckConstraint("start_time < end_time", name="ck_schedules_time_order"),
        Index("ix_schedules_provider_day", "provider_id", "day_of_week"),
    )

    id = Column(String(26), primary_key=True, default=generate_ulid)
    provider_id = Column(
        String(26), ForeignKey("service_providers.user_id", ondelete="CASCADE"), nullable=False
    )
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    provider = relationship("ServiceProvider", back_populates="schedules")

    def covers(self, day_of_week: int, time_of_day) -> bool:
        return self.day_of_week == day_of_week and self.start_time <= time_of_day <= self.end_time
