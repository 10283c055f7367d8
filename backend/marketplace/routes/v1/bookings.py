# backend/marketplace/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    POST /                  → Create a booking (multipart, with attachments)
    GET /?role=             → List bookings as customer or serviceprovider
    GET /{booking_id}       → Booking details (participants and admins)
    PUT /{booking_id}/accept    → Provider accepts a pending booking
    PUT /{booking_id}/complete  → Provider completes an active booking
    PUT /{booking_id}/reject    → Provider hands a pending booking to someone else
    PUT /{booking_id}/cancel    → Customer cancels, or provider hands over
"""

import asyncio
from datetime import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_booking_service
from ...core.enums import BookingRole
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.base import MessageResponse
from ...schemas.booking import BookingCreate, BookingCreatedResponse, BookingResponse
from ...services.booking_service import BookingService
from ...services.file_storage import AttachmentUpload, validate_attachment_uploads

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


async def _read_uploads(files: Optional[List[UploadFile]]) -> List[AttachmentUpload]:
    uploads = []
    for file in files or []:
        if not file.filename:
            continue
        uploads.append(
            AttachmentUpload(
                filename=file.filename, content_type=file.content_type, data=await file.read()
            )
        )
    return uploads


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    service_ids: List[str] = Form(...),
    service_area_id: str = Form(...),
    scheduled_at: datetime = Form(...),
    address: str = Form(...),
    latitude: float = Form(...),
    longitude: float = Form(...),
    notes: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreatedResponse:
    """
    Create a booking and assign it to an eligible provider.

    Validation failures are returned before any provider matching happens.
    """
    data = BookingCreate(
        service_ids=service_ids,
        service_area_id=service_area_id,
        scheduled_at=scheduled_at,
        address=address,
        latitude=latitude,
        longitude=longitude,
        notes=notes,
    )
    try:
        uploads = await _read_uploads(attachments)
        validate_attachment_uploads(uploads)
        booking = await asyncio.to_thread(
            booking_service.create_booking, current_user, data, uploads
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return BookingCreatedResponse(booking_id=booking.id, status=booking.status)


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    role: str = Query(..., description="customer or serviceprovider"),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        booking_role = BookingRole(role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Valid role (customer or serviceprovider) is required.",
        )
    try:
        bookings = await asyncio.to_thread(booking_service.list_bookings, current_user, booking_role)
    except DomainException as exc:
        handle_domain_exception(exc)
    return [BookingResponse.from_booking(booking) for booking in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id, current_user)
    except DomainException as exc:
        handle_domain_exception(exc)
    return BookingResponse.from_booking(booking)


@router.put("/{booking_id}/accept", response_model=MessageResponse)
async def accept_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(booking_service.accept_booking, booking_id, current_user)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Booking accepted successfully.")


@router.put("/{booking_id}/complete", response_model=MessageResponse)
async def complete_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(booking_service.complete_booking, booking_id, current_user)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Booking completed successfully.")


@router.put("/{booking_id}/reject", response_model=MessageResponse)
async def reject_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(booking_service.reject_booking, booking_id, current_user)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Booking rejected successfully.")


@router.put("/{booking_id}/cancel", response_model=MessageResponse)
async def cancel_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(booking_service.cancel_booking, booking_id, current_user)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Booking cancelled successfully.")
