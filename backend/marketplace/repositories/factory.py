# backend/marketplace/repositories/factory.py
"""
Repository Factory for the marketplace.

Centralizes repository creation so services and tests build repositories the
same way.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .catalog_repository import (
        ServiceAreaRepository,
        ServiceCategoryRepository,
        ServiceRepository,
    )
    from .message_repository import MessageRepository
    from .notification_repository import NotificationRepository
    from .provider_repository import ProviderRepository
    from .review_repository import ReviewRepository
    from .subscription_repository import SubscriptionPlanRepository, SubscriptionRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        return BaseRepository(db, model)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_provider_repository(db: Session) -> "ProviderRepository":
        from .provider_repository import ProviderRepository

        return ProviderRepository(db)

    @staticmethod
    def create_service_repository(db: Session) -> "ServiceRepository":
        from .catalog_repository import ServiceRepository

        return ServiceRepository(db)

    @staticmethod
    def create_service_category_repository(db: Session) -> "ServiceCategoryRepository":
        from .catalog_repository import ServiceCategoryRepository

        return ServiceCategoryRepository(db)

    @staticmethod
    def create_service_area_repository(db: Session) -> "ServiceAreaRepository":
        from .catalog_repository import ServiceAreaRepository

        return ServiceAreaRepository(db)

    @staticmethod
    def create_subscription_repository(db: Session) -> "SubscriptionRepository":
        from .subscription_repository import SubscriptionRepository

        return SubscriptionRepository(db)

    @staticmethod
    def create_subscription_plan_repository(db: Session) -> "SubscriptionPlanRepository":
        from .subscription_repository import SubscriptionPlanRepository

        return SubscriptionPlanRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> "MessageRepository":
        from .message_repository import MessageRepository

        return MessageRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        from .review_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)
