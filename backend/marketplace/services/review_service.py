# backend/marketplace/services/review_service.py
"""
Review Service.

A customer may review each completed booking once. The provider's aggregate
rating is a running mean maintained in the same transaction as the insert.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, NotificationType
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..models.provider import ServiceProvider
from ..models.review import REVIEW_COMMENT_MAX_LENGTH, Review
from ..models.user import User
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.review_repository import ReviewRepository
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

ALREADY_REVIEWED_MESSAGE = "You have already reviewed this booking."


def apply_rating(provider: ServiceProvider, rating: int) -> None:
    """Fold one more rating into the provider's running mean."""
    count = provider.review_count or 0
    total = (provider.rating or 0.0) * count + rating
    provider.review_count = count + 1
    provider.rating = total / provider.review_count


class ReviewService(BaseService):
    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        review_repository: Optional[ReviewRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.repository = review_repository or RepositoryFactory.create_review_repository(db)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("submit_review")
    def submit_review(
        self, user: User, booking_id: str, rating: int, comment: Optional[str] = None
    ) -> Review:
        """
        Raises:
            NotFoundException: unknown booking
            ForbiddenException: caller is not the booking's customer
            InvalidStateException: booking is not completed
            ConflictException: booking already reviewed
        """
        if not 1 <= rating <= 5:
            raise ValidationException("Rating must be between 1 and 5", code="INVALID_RATING")
        comment = (comment or "").strip() or None
        if comment and len(comment) > REVIEW_COMMENT_MAX_LENGTH:
            raise ValidationException(
                f"Comment cannot exceed {REVIEW_COMMENT_MAX_LENGTH} characters",
                code="COMMENT_TOO_LONG",
            )

        booking = self.booking_repository.get_with_details(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        if booking.customer_id != user.id:
            raise ForbiddenException("You are not authorized to review this booking.")
        if booking.status != BookingStatus.COMPLETED.value:
            raise InvalidStateException(
                "You can only review completed bookings.", current_status=booking.status
            )
        if booking.review is not None:
            raise ConflictException(ALREADY_REVIEWED_MESSAGE, code="ALREADY_REVIEWED")

        try:
            with self.transaction():
                try:
                    review = self.repository.create(
                        booking_id=booking.id,
                        customer_id=user.id,
                        provider_id=booking.service_provider_id,
                        rating=rating,
                        comment=comment,
                    )
                except RepositoryException as e:
                    if isinstance(e.__cause__, IntegrityError):
                        raise ConflictException(ALREADY_REVIEWED_MESSAGE, code="ALREADY_REVIEWED") from e
                    raise
                apply_rating(booking.service_provider, rating)
                self.notification_service.create_notification(
                    booking.service_provider_id,
                    NotificationType.BOOKING_REVIEWED,
                    booking_id=booking.id,
                    extra={"rating": rating},
                )
        except Exception:
            self.notification_service.discard_pending()
            raise

        self.notification_service.dispatch_pending()
        self.log_operation(
            "submit_review", booking_id=booking.id, provider_id=booking.service_provider_id, rating=rating
        )
        return review

    def get_review_for_booking(self, user: User, booking_id: str) -> Optional[Review]:
        booking = self.booking_repository.get_by_id(booking_id, load_relationships=False)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        if not booking.is_participant(user.id) and not user.is_admin:
            raise ForbiddenException("You do not have access to this booking.")
        return self.repository.get_by_booking(booking_id)

    def list_provider_reviews(self, provider_id: str, limit: int = 50) -> List[Review]:
        return self.repository.list_for_provider(provider_id, limit=limit)
