# backend/marketplace/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Collaborators with
process-wide state (transport, storage, selector) have their own
dependencies so tests can override them.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import settings
from ...services.booking_service import BookingService
from ...services.catalog_service import CatalogService
from ...services.file_storage import FileStorage, LocalFileStorage
from ...services.message_service import MessageService
from ...services.notification_service import NotificationService
from ...services.provider_matching_service import ProviderMatchingService
from ...services.provider_selection import ProviderSelector, get_default_selector
from ...services.provider_service import ProviderService
from ...services.realtime.transport import (
    BroadcastNotificationTransport,
    NotificationTransport,
    NullNotificationTransport,
)
from ...services.review_service import ReviewService
from ...services.subscription_service import SubscriptionService
from ...services.user_service import UserService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _notification_transport_singleton() -> NotificationTransport:
    if settings.live_push_enabled:
        return BroadcastNotificationTransport()
    logger.info("Live push disabled; notifications are stored only")
    return NullNotificationTransport()


def get_notification_transport() -> NotificationTransport:
    return _notification_transport_singleton()


@lru_cache(maxsize=1)
def _file_storage_singleton() -> FileStorage:
    return LocalFileStorage(settings.upload_dir)


def get_file_storage() -> FileStorage:
    return _file_storage_singleton()


def get_provider_selector() -> ProviderSelector:
    return get_default_selector()


def get_notification_service(
    db: Session = Depends(get_db),
    transport: NotificationTransport = Depends(get_notification_transport),
) -> NotificationService:
    return NotificationService(db, transport=transport)


def get_matching_service(
    db: Session = Depends(get_db),
    selector: ProviderSelector = Depends(get_provider_selector),
) -> ProviderMatchingService:
    return ProviderMatchingService(db, selector=selector)


def get_booking_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
    matching_service: ProviderMatchingService = Depends(get_matching_service),
    file_storage: FileStorage = Depends(get_file_storage),
) -> BookingService:
    """
    Get BookingService with its notification, matching and storage collaborators.

    All of them share the request's session so one transition is one commit.
    """
    return BookingService(
        db,
        notification_service=notification_service,
        matching_service=matching_service,
        file_storage=file_storage,
    )


def get_message_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> MessageService:
    return MessageService(db, notification_service=notification_service)


def get_review_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> ReviewService:
    return ReviewService(db, notification_service=notification_service)


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


def get_provider_service(
    db: Session = Depends(get_db),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> ProviderService:
    return ProviderService(db, subscription_service=subscription_service)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)
