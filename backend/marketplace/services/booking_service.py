# backend/marketplace/services/booking_service.py
"""
Booking Service.

Owns the booking state machine:

    create   -> PENDING (assigned to a matched provider)
    accept   PENDING -> ACTIVE                      (assigned provider)
    reject   PENDING -> PENDING, new provider       (assigned provider)
    complete ACTIVE  -> COMPLETED                   (assigned provider)
    cancel   PENDING|ACTIVE -> CANCELLED            (customer)
    cancel   PENDING|ACTIVE -> PENDING, new provider (assigned provider)

Every transition is one transaction: the booking update and the notification
rows commit together, and live pushes go out only after the commit.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
import logging
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import settings
from ..core.enums import BookingRole, BookingStatus, NotificationType
from ..core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidStateException,
    NoProviderAvailableException,
    NoReplacementProviderException,
    NotFoundException,
)
from ..models.booking import Booking
from ..models.catalog import Service
from ..models.provider import ServiceProvider
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.catalog_repository import ServiceRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate
from .base import BaseService
from .file_storage import (
    AttachmentUpload,
    FileStorage,
    NullFileStorage,
    StoredAttachment,
    delete_attachments,
    store_attachments,
)
from .notification_service import NotificationService
from .provider_matching_service import ProviderMatchingService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BookingService(BaseService):
    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        matching_service: Optional[ProviderMatchingService] = None,
        file_storage: Optional[FileStorage] = None,
        booking_repository: Optional[BookingRepository] = None,
        service_repository: Optional[ServiceRepository] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.matching_service = matching_service or ProviderMatchingService(db)
        self.file_storage: FileStorage = file_storage or NullFileStorage()
        self.repository = booking_repository or RepositoryFactory.create_booking_repository(db)
        self.service_repository = service_repository or RepositoryFactory.create_service_repository(db)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        customer: User,
        data: BookingCreate,
        attachments: Sequence[AttachmentUpload] = (),
    ) -> Booking:
        """
        Create a pending booking assigned to a matched provider.

        Attachments are stored in a worker thread while the provider is being
        matched; the booking row is written only after both have finished.

        Raises:
            NotFoundException: unknown area or service
            NoProviderAvailableException: nobody is eligible
            BookingConflictException: lost every assignment race
        """
        services = self._load_bookable_services(data.service_ids)
        total_amount = sum((Decimal(service.base_price) for service in services), Decimal("0"))
        total_hours = sum((Decimal(service.estimated_hours) for service in services), Decimal("0"))
        scheduled_end_at = data.scheduled_at + self._slot_length(total_hours)

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="booking-attachments") as pool:
            upload: "Future[List[StoredAttachment]]" = pool.submit(
                store_attachments, self.file_storage, list(attachments)
            )

            def attempt() -> Booking:
                provider = self.matching_service.match(
                    data.service_area_id,
                    data.service_ids,
                    data.scheduled_at,
                    customer_id=customer.id,
                    scheduled_end_at=scheduled_end_at,
                )
                self.matching_service.claim(provider)
                stored = upload.result()

                booking = self.repository.create(
                    customer_id=customer.id,
                    service_provider_id=provider.user_id,
                    service_area_id=data.service_area_id,
                    status=BookingStatus.PENDING.value,
                    scheduled_at=data.scheduled_at,
                    scheduled_end_at=scheduled_end_at,
                    total_amount=total_amount,
                    total_estimated_hours=total_hours,
                    address=data.address,
                    latitude=data.latitude,
                    longitude=data.longitude,
                    notes=data.notes,
                )
                for service in services:
                    self.repository.add_item(
                        booking, service.id, service.base_price, service.estimated_hours
                    )
                for item in stored:
                    self.repository.add_attachment(
                        booking,
                        uploader_id=customer.id,
                        file_url=item.file_url,
                        original_filename=item.original_filename,
                        content_type=item.content_type,
                        kind=item.kind.value,
                    )
                self.notification_service.create_notification(
                    provider.user_id, NotificationType.BOOKING_CREATED, booking_id=booking.id
                )
                return booking

            try:
                booking = self._assign_with_retry("create", attempt)
            except Exception:
                self._discard_uploads(upload)
                raise

        self.notification_service.dispatch_pending()
        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            customer_id=customer.id,
            provider_id=booking.service_provider_id,
        )
        return booking

    # ------------------------------------------------------------------
    # Provider transitions
    # ------------------------------------------------------------------

    @BaseService.measure_operation("accept_booking")
    def accept_booking(self, booking_id: str, actor: User) -> Booking:
        def operation() -> Booking:
            booking = self._get_booking(booking_id)
            self._require_assigned_provider(booking, actor, "accept")
            self._require_status(booking, (BookingStatus.PENDING,), "accepted")
            booking.accept()
            self.notification_service.create_notification(
                booking.customer_id,
                NotificationType.BOOKING_ACCEPTED,
                booking_id=booking.id,
                extra={"provider_name": actor.full_name},
            )
            return booking

        booking = self._execute(operation)
        self.notification_service.dispatch_pending()
        self.log_operation("accept_booking", booking_id=booking_id, provider_id=actor.id)
        return booking

    @BaseService.measure_operation("reject_booking")
    def reject_booking(self, booking_id: str, actor: User) -> Booking:
        """
        Hand a pending booking to another eligible provider.

        NoProviderAvailableException propagates and the booking stays with
        the rejecting provider.
        """

        def attempt() -> Booking:
            booking = self._get_booking(booking_id)
            self._require_assigned_provider(booking, actor, "reject")
            self._require_status(booking, (BookingStatus.PENDING,), "rejected")
            replacement = self._find_replacement(booking)
            booking.reassign(replacement.user_id)
            self.notification_service.create_notification(
                replacement.user_id, NotificationType.BOOKING_CREATED, booking_id=booking.id
            )
            self.notification_service.create_notification(
                booking.customer_id,
                NotificationType.BOOKING_REASSIGNED_AFTER_REJECTED,
                booking_id=booking.id,
            )
            return booking

        booking = self._assign_with_retry("reject", attempt)
        self.notification_service.dispatch_pending()
        self.log_operation(
            "reject_booking",
            booking_id=booking_id,
            rejected_by=actor.id,
            new_provider_id=booking.service_provider_id,
        )
        return booking

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, actor: User) -> Booking:
        def operation() -> Booking:
            booking = self._get_booking(booking_id)
            self._require_assigned_provider(booking, actor, "complete")
            self._require_status(booking, (BookingStatus.ACTIVE,), "completed")
            booking.complete()
            self.notification_service.create_notification(
                booking.customer_id, NotificationType.BOOKING_COMPLETED, booking_id=booking.id
            )
            return booking

        booking = self._execute(operation)
        self.notification_service.dispatch_pending()
        self.log_operation("complete_booking", booking_id=booking_id, provider_id=actor.id)
        return booking

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, actor: User) -> Booking:
        """
        Cancel on behalf of either participant.

        A customer cancel ends the booking. A provider cancel is a handover:
        the booking goes back to pending with a replacement provider, and
        fails with NoReplacementProviderException when there is none.
        """
        booking = self._get_booking(booking_id)
        if actor.id == booking.customer_id:
            return self._cancel_by_customer(booking_id, actor)
        if actor.id == booking.service_provider_id:
            return self._cancel_by_provider(booking_id, actor)
        raise ForbiddenException("You are not allowed to cancel this booking.")

    def _cancel_by_customer(self, booking_id: str, actor: User) -> Booking:
        def operation() -> Booking:
            booking = self._get_booking(booking_id)
            if booking.customer_id != actor.id:
                raise ForbiddenException("You are not allowed to cancel this booking.")
            self._require_status(booking, (BookingStatus.PENDING, BookingStatus.ACTIVE), "cancelled")
            booking.cancel()
            self.notification_service.create_notification(
                booking.service_provider_id,
                NotificationType.BOOKING_CANCELLED_BY_USER,
                booking_id=booking.id,
                extra={"customer_name": actor.full_name},
            )
            return booking

        booking = self._execute(operation)
        self.notification_service.dispatch_pending()
        self.log_operation("cancel_booking", booking_id=booking_id, cancelled_by="customer")
        return booking

    def _cancel_by_provider(self, booking_id: str, actor: User) -> Booking:
        def attempt() -> Booking:
            booking = self._get_booking(booking_id)
            self._require_assigned_provider(booking, actor, "cancel")
            self._require_status(booking, (BookingStatus.PENDING, BookingStatus.ACTIVE), "cancelled")
            try:
                replacement = self._find_replacement(booking)
            except NoProviderAvailableException as e:
                raise NoReplacementProviderException(details={"booking_id": booking.id}) from e
            booking.reassign(replacement.user_id)
            self.notification_service.create_notification(
                replacement.user_id, NotificationType.BOOKING_CREATED, booking_id=booking.id
            )
            self.notification_service.create_notification(
                booking.customer_id,
                NotificationType.BOOKING_REASSIGNED_AFTER_CANCELLED,
                booking_id=booking.id,
                extra={"old_provider_name": actor.full_name},
            )
            return booking

        booking = self._assign_with_retry("cancel", attempt)
        self.notification_service.dispatch_pending()
        self.log_operation(
            "cancel_booking",
            booking_id=booking_id,
            cancelled_by="provider",
            new_provider_id=booking.service_provider_id,
        )
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @BaseService.measure_operation("list_bookings")
    def list_bookings(self, user: User, role: BookingRole) -> List[Booking]:
        if role == BookingRole.SERVICE_PROVIDER:
            return self.repository.list_for_provider(user.id)
        return self.repository.list_for_customer(user.id)

    def get_booking(self, booking_id: str, user: User) -> Booking:
        booking = self._get_booking(booking_id)
        if not booking.is_participant(user.id) and not user.is_admin:
            raise ForbiddenException("You do not have access to this booking.")
        return booking

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_with_details(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @staticmethod
    def _require_assigned_provider(booking: Booking, actor: User, action: str) -> None:
        if booking.service_provider_id != actor.id:
            raise ForbiddenException(f"Only the assigned service provider can {action} this booking.")

    @staticmethod
    def _require_status(
        booking: Booking, allowed: Iterable[BookingStatus], verb: str
    ) -> None:
        if booking.status_enum not in tuple(allowed):
            raise InvalidStateException(
                f"A {booking.status} booking cannot be {verb}.", current_status=booking.status
            )

    def _load_bookable_services(self, service_ids: Sequence[str]) -> List[Service]:
        services = self.service_repository.get_many(service_ids)
        by_id = {service.id: service for service in services if service.is_active}
        missing = [service_id for service_id in service_ids if service_id not in by_id]
        if missing:
            raise NotFoundException(
                "One or more selected services are not available.",
                details={"service_ids": missing},
            )
        return [by_id[service_id] for service_id in service_ids]

    @staticmethod
    def _slot_length(total_hours: Decimal) -> timedelta:
        minutes = max(float(total_hours) * 60, settings.booking_min_slot_minutes)
        return timedelta(minutes=minutes)

    def _find_replacement(self, booking: Booking) -> ServiceProvider:
        """Same area, services, time and customer; anyone but the current provider."""
        replacement = self.matching_service.match(
            booking.service_area_id,
            booking.service_ids,
            booking.scheduled_at,
            exclude_provider_ids={booking.service_provider_id},
            customer_id=booking.customer_id,
            scheduled_end_at=booking.scheduled_end_at,
            exclude_booking_id=booking.id,
        )
        self.matching_service.claim(replacement)
        return replacement

    def _execute(self, operation: Callable[[], T]) -> T:
        """Run one attempt in its own transaction; queued pushes are dropped on failure."""
        try:
            with self.transaction():
                try:
                    result = operation()
                    self.repository.flush()
                except StaleDataError as e:
                    raise BookingConflictException(details={"reason": "concurrent_update"}) from e
            return result
        except Exception:
            self.notification_service.discard_pending()
            raise

    def _assign_with_retry(self, reason: str, operation: Callable[[], T]) -> T:
        """
        Run an assigning transition, retrying when a concurrent transaction
        claimed the chosen provider (or touched the booking) first.

        Each retry re-reads the booking and re-runs eligibility, so a provider
        who just got the slot is no longer eligible.
        """
        attempts = settings.booking_assignment_max_attempts
        for attempt in range(1, attempts + 1):
            try:
                result = self._execute(operation)
            except BookingConflictException:
                prometheus_metrics.record_provider_assignment(reason, "stale")
                if attempt >= attempts:
                    logger.warning("Provider assignment for %s gave up after %d attempts", reason, attempt)
                    raise
                logger.info("Provider assignment for %s lost a race, retrying (%d)", reason, attempt)
                continue
            except NoProviderAvailableException:
                prometheus_metrics.record_provider_assignment(reason, "no_provider")
                raise
            prometheus_metrics.record_provider_assignment(reason, "assigned")
            return result
        raise BookingConflictException()

    def _discard_uploads(self, upload: "Future[List[StoredAttachment]]") -> None:
        error = upload.exception()
        if error is not None:
            logger.warning("Attachment upload failed during booking creation: %s", error)
            return
        delete_attachments(self.file_storage, upload.result())

