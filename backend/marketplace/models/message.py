# backend/marketplace/models/message.py
"""
Message model for booking-related chat.

Messages are tied to bookings and exchanged between the customer and the
assigned provider. Only ``is_read`` ever changes after creation.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

MESSAGE_MAX_LENGTH = 1000


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_booking_sent", "booking_id", "sent_at"),
        Index("ix_messages_receiver_unread", "receiver_id", "is_read"),
    )

    id = Column(String(26), primary_key=True, default=generate_ulid)
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(MESSAGE_MAX_LENGTH), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    sent_at = Column(UTCDateTime, nullable=False, default=utc_now)

    booking = relationship("Booking", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])
