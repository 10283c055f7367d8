# backend/marketplace/models/review.py
"""
Review model: one per completed booking, written by the booking's customer.

Reviews are never edited or deleted; the provider's aggregate rating is a
running mean updated when a review is inserted.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

REVIEW_COMMENT_MAX_LENGTH = 500


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_reviews_booking_id"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    provider_id = Column(
        String(26), ForeignKey("service_providers.user_id"), nullable=False, index=True
    )
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    booking = relationship("Booking", back_populates="review")
    customer = relationship("User", foreign_keys=[customer_id])
