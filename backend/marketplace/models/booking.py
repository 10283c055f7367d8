# backend/marketplace/models/booking.py
"""
Booking model.

A booking pins one customer, one assigned provider, one area and a scheduled
slot. Line items carry the service price as it was when the booking was made,
so later catalog price changes never touch existing bookings.
"""

from datetime import datetime
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.enums import BookingStatus
from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    service_provider_id = Column(
        String(26), ForeignKey("service_providers.user_id"), nullable=False, index=True
    )
    service_area_id = Column(String(26), ForeignKey("service_areas.id"), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Naive wall-clock time in the marketplace timezone
    scheduled_at = Column(DateTime(timezone=False), nullable=False)
    scheduled_end_at = Column(DateTime(timezone=False), nullable=False)

    total_amount = Column(Numeric(10, 2), nullable=False)
    total_estimated_hours = Column(Numeric(6, 2), nullable=False)
    address = Column(String(500), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)

    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint("scheduled_end_at > scheduled_at", name="ck_bookings_slot_order"),
        Index("ix_bookings_provider_slot", "service_provider_id", "status", "scheduled_at"),
    )

    customer = relationship("User", foreign_keys=[customer_id])
    service_provider = relationship("ServiceProvider", foreign_keys=[service_provider_id])
    service_area = relationship("ServiceArea")
    items = relationship(
        "BookingServiceItem", back_populates="booking", cascade="all, delete-orphan"
    )
    attachments = relationship("Attachment", back_populates="booking", cascade="all, delete-orphan")
    messages = relationship(
        "Message", back_populates="booking", cascade="all, delete-orphan", order_by="Message.sent_at"
    )
    notifications = relationship("Notification", back_populates="booking")
    review = relationship("Review", back_populates="booking", uselist=False)

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} customer={self.customer_id} "
            f"provider={self.service_provider_id} status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def service_ids(self) -> list[str]:
        return [item.service_id for item in self.items]

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.customer_id, self.service_provider_id)

    def other_party_id(self, user_id: str) -> Optional[str]:
        if user_id == self.customer_id:
            return self.service_provider_id
        if user_id == self.service_provider_id:
            return self.customer_id
        return None

    def accept(self) -> None:
        self.status = BookingStatus.ACTIVE.value

    def complete(self, at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.COMPLETED.value
        self.completed_at = at or utc_now()

    def cancel(self, at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = at or utc_now()

    def reassign(self, provider_id: str) -> None:
        """Hand the booking to another provider; it goes back to waiting for acceptance."""
        logger.info(
            "Reassigning booking %s from %s to %s", self.id, self.service_provider_id, provider_id
        )
        self.service_provider_id = provider_id
        self.status = BookingStatus.PENDING.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "service_provider_id": self.service_provider_id,
            "service_area_id": self.service_area_id,
            "status": self.status,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
        }


class BookingServiceItem(Base):
    """Line item with the service price snapshotted at booking time."""

    __tablename__ = "booking_service_items"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)
    price_at_booking = Column(Numeric(10, 2), nullable=False)
    estimated_hours = Column(Numeric(5, 2), nullable=False)

    booking = relationship("Booking", back_populates="items")
    service = relationship("Service")


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    uploader_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    file_url = Column(String(500), nullable=False)
    original_filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=True)
    kind = Column(String(10), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    booking = relationship("Booking", back_populates="attachments")
