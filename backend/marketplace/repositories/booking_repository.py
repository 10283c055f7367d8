# backend/marketplace/repositories/booking_repository.py
"""
Booking Repository.

Data access for bookings and their line items and attachments. Status changes
are made on the loaded entity by the service; this module only reads and
inserts.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import and_, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.enums import OPEN_BOOKING_STATUSES
from ..core.exceptions import RepositoryException
from ..models.booking import Attachment, Booking, BookingServiceItem
from ..models.message import Message
from ..models.provider import ServiceProvider
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            selectinload(Booking.customer),
            selectinload(Booking.service_provider).selectinload(ServiceProvider.user),
            selectinload(Booking.service_area),
            selectinload(Booking.items).selectinload(BookingServiceItem.service),
            selectinload(Booking.attachments),
            selectinload(Booking.review),
        )

    def get_with_details(self, booking_id: str) -> Optional[Booking]:
        return self.get_by_id(booking_id, load_relationships=True)

    def add_item(self, booking: Booking, service_id: str, price, estimated_hours) -> BookingServiceItem:
        item = BookingServiceItem(
            service_id=service_id, price_at_booking=price, estimated_hours=estimated_hours
        )
        booking.items.append(item)
        return item

    def add_attachment(self, booking: Booking, **kwargs) -> Attachment:
        attachment = Attachment(**kwargs)
        booking.attachments.append(attachment)
        return attachment

    def list_for_customer(self, customer_id: str) -> List[Booking]:
        try:
            return (
                self._apply_eager_loading(self.db.query(Booking))
                .filter(Booking.customer_id == customer_id)
                .order_by(Booking.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing bookings for customer %s: %s", customer_id, e)
            raise RepositoryException(f"Failed to list bookings: {e}") from e

    def list_for_provider(self, provider_id: str) -> List[Booking]:
        try:
            return (
                self._apply_eager_loading(self.db.query(Booking))
                .filter(Booking.service_provider_id == provider_id)
                .order_by(Booking.scheduled_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing bookings for provider %s: %s", provider_id, e)
            raise RepositoryException(f"Failed to list bookings: {e}") from e

    def count_open_overlapping(
        self, provider_id: str, start: datetime, end: datetime
    ) -> int:
        """Open bookings of ``provider_id`` overlapping ``[start, end)``."""
        try:
            return (
                self.db.query(Booking)
                .filter(
                    Booking.service_provider_id == provider_id,
                    Booking.status.in_([s.value for s in OPEN_BOOKING_STATUSES]),
                    Booking.scheduled_at < end,
                    Booking.scheduled_end_at > start,
                )
                .count()
            )
        except SQLAlchemyError as e:
            logger.error("Error counting overlapping bookings: %s", e)
            raise RepositoryException(f"Failed to count bookings: {e}") from e

    def list_with_messages_for_user(self, user_id: str) -> List[Booking]:
        """Bookings the user takes part in that have at least one message."""
        try:
            return (
                self.db.query(Booking)
                .options(
                    selectinload(Booking.customer),
                    selectinload(Booking.service_provider).selectinload(ServiceProvider.user),
                )
                .filter(
                    (Booking.customer_id == user_id) | (Booking.service_provider_id == user_id),
                    exists().where(and_(Message.booking_id == Booking.id)),
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing conversations for %s: %s", user_id, e)
            raise RepositoryException(f"Failed to list conversations: {e}") from e
