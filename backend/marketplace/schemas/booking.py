# backend/marketplace/schemas/booking.py
"""
Booking request/response schemas.

Request validation here runs before any service code: an invalid payload never
reaches provider matching.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import BookingStatus
from ..core.timezone_utils import marketplace_now, to_marketplace_wall_clock
from ..models.booking import Booking
from ..services.formatting import format_currency, format_estimated_time
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel

NOTES_MAX_LENGTH = 500


class BookingCreate(StrictRequestModel):
    service_ids: List[str] = Field(..., min_length=1, description="Services to book")
    service_area_id: str = Field(..., min_length=1)
    scheduled_at: datetime = Field(..., description="Requested date and time (marketplace local time)")
    address: str = Field(..., min_length=1, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("service_ids")
    @classmethod
    def validate_service_ids(cls, v: List[str]) -> List[str]:
        cleaned = [service_id.strip() for service_id in v]
        if any(not service_id for service_id in cleaned):
            raise ValueError("Service ids cannot be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Duplicate services are not allowed")
        return cleaned

    @field_validator("scheduled_at")
    @classmethod
    def validate_future(cls, v: datetime) -> datetime:
        wall_clock = to_marketplace_wall_clock(v)
        if wall_clock <= marketplace_now():
            raise ValueError("Scheduled date must be in the future")
        return wall_clock

    @field_validator("latitude", "longitude")
    @classmethod
    def validate_coordinate(cls, v: float) -> float:
        if v == 0:
            raise ValueError("A valid location is required")
        return v

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class UserSummary(StandardizedModel):
    id: str
    full_name: str


class BookingItemResponse(StandardizedModel):
    service_id: str
    service_name: str
    price_at_booking: Money
    formatted_price: str


class AttachmentResponse(StandardizedModel):
    id: str
    file_url: str
    original_filename: str
    kind: str


class BookingResponse(StandardizedModel):
    id: str
    status: BookingStatus
    customer: UserSummary
    service_provider: UserSummary
    service_area_id: str
    service_area_name: str
    scheduled_at: datetime
    items: List[BookingItemResponse]
    total_amount: Money
    formatted_total: str
    total_estimated_hours: Money
    formatted_estimated_time: str
    address: str
    latitude: float
    longitude: float
    notes: Optional[str] = None
    attachments: List[AttachmentResponse] = Field(default_factory=list)
    created_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    has_review: bool = False

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        provider_user = booking.service_provider.user if booking.service_provider else None
        return cls(
            id=booking.id,
            status=BookingStatus(booking.status),
            customer=UserSummary(id=booking.customer.id, full_name=booking.customer.full_name),
            service_provider=UserSummary(
                id=booking.service_provider_id,
                full_name=provider_user.full_name if provider_user else "",
            ),
            service_area_id=booking.service_area_id,
            service_area_name=booking.service_area.name if booking.service_area else "",
            scheduled_at=booking.scheduled_at,
            items=[
                BookingItemResponse(
                    service_id=item.service_id,
                    service_name=item.service.name if item.service else "",
                    price_at_booking=item.price_at_booking,
                    formatted_price=format_currency(item.price_at_booking),
                )
                for item in booking.items
            ],
            total_amount=booking.total_amount,
            formatted_total=format_currency(booking.total_amount),
            total_estimated_hours=booking.total_estimated_hours,
            formatted_estimated_time=format_estimated_time(booking.total_estimated_hours),
            address=booking.address,
            latitude=booking.latitude,
            longitude=booking.longitude,
            notes=booking.notes,
            attachments=[
                AttachmentResponse(
                    id=attachment.id,
                    file_url=attachment.file_url,
                    original_filename=attachment.original_filename,
                    kind=attachment.kind,
                )
                for attachment in booking.attachments
            ],
            created_at=booking.created_at,
            completed_at=booking.completed_at,
            cancelled_at=booking.cancelled_at,
            has_review=booking.review is not None,
        )


class BookingCreatedResponse(StandardizedModel):
    booking_id: str
    status: BookingStatus
    message: str = "Booking created successfully."
