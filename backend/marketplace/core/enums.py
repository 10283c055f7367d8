# backend/marketplace/core/enums.py
"""
Core enums for the marketplace.

String-valued enums are stored as plain strings so the database stays
readable and migrations never need a native ENUM type.
"""

from enum import Enum, IntEnum


class RoleName(str, Enum):
    """Roles a user can hold."""

    ADMIN = "admin"
    CUSTOMER = "customer"
    SERVICE_PROVIDER = "service_provider"


class BookingStatus(str, Enum):
    """
    Booking lifecycle states.

    PENDING -> ACTIVE -> COMPLETED, and PENDING|ACTIVE -> CANCELLED.
    COMPLETED and CANCELLED are terminal.
    """

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


# Statuses that hold a provider's time slot
OPEN_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.ACTIVE)


class BookingRole(str, Enum):
    """Which side of the booking a listing is requested for."""

    CUSTOMER = "customer"
    SERVICE_PROVIDER = "serviceprovider"


class NotificationType(str, Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_ACCEPTED = "booking_accepted"
    BOOKING_CANCELLED_BY_USER = "booking_cancelled_by_user"
    BOOKING_REASSIGNED_AFTER_CANCELLED = "booking_reassigned_after_cancelled"
    BOOKING_REASSIGNED_AFTER_REJECTED = "booking_reassigned_after_rejected"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_REVIEWED = "booking_reviewed"
    NEW_MESSAGE = "new_message"


class DayOfWeek(IntEnum):
    """Weekday numbering shared with ``datetime.date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class AttachmentKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
