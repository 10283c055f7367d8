# backend/marketplace/services/provider_service.py
"""
Provider Service.

Onboarding and profile management for service providers:

- a customer applies with a bio, services, areas and a weekly schedule
- an admin approves (verified, promoted, free trial) or rejects the application
- admins and the provider can switch availability on and off
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import ConflictException, NotFoundException
from ..models.catalog import Service, ServiceArea
from ..models.provider import Schedule, ServiceProvider
from ..models.user import User
from ..repositories.catalog_repository import ServiceAreaRepository, ServiceRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.provider_repository import ProviderRepository
from ..schemas.provider import ProviderApplication
from .base import BaseService
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


class ProviderService(BaseService):
    def __init__(
        self,
        db: Session,
        subscription_service: Optional[SubscriptionService] = None,
        provider_repository: Optional[ProviderRepository] = None,
        service_repository: Optional[ServiceRepository] = None,
        area_repository: Optional[ServiceAreaRepository] = None,
    ):
        super().__init__(db)
        self.subscription_service = subscription_service or SubscriptionService(db)
        self.repository = provider_repository or RepositoryFactory.create_provider_repository(db)
        self.service_repository = service_repository or RepositoryFactory.create_service_repository(db)
        self.area_repository = area_repository or RepositoryFactory.create_service_area_repository(db)

    # ------------------------------------------------------------------
    # Applicant / provider operations
    # ------------------------------------------------------------------

    @BaseService.measure_operation("apply_as_provider")
    def apply(self, user: User, data: ProviderApplication) -> ServiceProvider:
        """
        Create an unverified provider profile for ``user``.

        Raises:
            ConflictException: the user already has a provider profile
            NotFoundException: a service or area id does not exist
        """
        if self.repository.get_by_id(user.id, load_relationships=False) is not None:
            raise ConflictException(
                "User is already registered as a service provider.", code="PROVIDER_EXISTS"
            )
        services = self._load_services(data.service_ids)
        areas = self._load_areas(data.service_area_ids)

        with self.transaction():
            provider = ServiceProvider(
                user_id=user.id,
                bio=data.bio,
                is_active=True,
                is_verified=False,
                rating=0.0,
                review_count=0,
            )
            provider.services = services
            provider.service_areas = areas
            provider.schedules = self._build_schedules(data)
            self.db.add(provider)
            self.repository.flush()

        self.log_operation("apply_as_provider", provider_id=user.id)
        return self.get_profile(user.id)

    @BaseService.measure_operation("update_provider_profile")
    def update_profile(self, user: User, data: ProviderApplication) -> ServiceProvider:
        """Replace bio, services, areas and schedules in one go."""
        provider = self._get_provider(user.id)
        services = self._load_services(data.service_ids)
        areas = self._load_areas(data.service_area_ids)

        with self.transaction():
            provider.bio = data.bio
            provider.services = services
            provider.service_areas = areas
            provider.schedules = self._build_schedules(data)
            self.repository.flush()

        self.log_operation("update_provider_profile", provider_id=user.id)
        return self.get_profile(user.id)

    def get_profile(self, provider_id: str) -> ServiceProvider:
        return self._get_provider(provider_id)

    def get_my_profile(self, user: User) -> ServiceProvider:
        return self._get_provider(user.id)

    def set_own_availability(self, user: User, is_active: bool) -> ServiceProvider:
        return self.set_active(user.id, is_active)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def list_pending(self) -> List[ServiceProvider]:
        return self.repository.list_pending_verification()

    @BaseService.measure_operation("approve_provider")
    def approve(self, provider_id: str) -> ServiceProvider:
        """Verify the provider, promote the user and start the free trial."""
        provider = self._get_provider(provider_id)
        if provider.is_verified:
            raise ConflictException("Provider is already verified.", code="PROVIDER_ALREADY_VERIFIED")

        with self.transaction():
            provider.is_verified = True
            provider.user.role = RoleName.SERVICE_PROVIDER.value
            self.subscription_service.grant_free_trial(provider.user_id)
            self.repository.flush()

        self.log_operation("approve_provider", provider_id=provider_id)
        return provider

    @BaseService.measure_operation("reject_provider")
    def reject(self, provider_id: str, reason: Optional[str] = None) -> None:
        """Delete an unverified application; the user stays a customer."""
        provider = self._get_provider(provider_id)
        if provider.is_verified:
            raise ConflictException(
                "Only pending applications can be rejected.", code="PROVIDER_ALREADY_VERIFIED"
            )
        with self.transaction():
            provider.user.role = RoleName.CUSTOMER.value
            self.repository.delete(provider_id)
        self.log_operation("reject_provider", provider_id=provider_id, reason=reason or "-")

    @BaseService.measure_operation("set_provider_active")
    def set_active(self, provider_id: str, is_active: bool) -> ServiceProvider:
        provider = self._get_provider(provider_id)
        if provider.is_active != is_active:
            with self.transaction():
                provider.is_active = is_active
                self.repository.flush()
            self.log_operation("set_provider_active", provider_id=provider_id, is_active=is_active)
        return provider

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_provider(self, provider_id: str) -> ServiceProvider:
        provider = self.repository.get_with_details(provider_id)
        if provider is None:
            raise NotFoundException("Provider profile not found.", details={"provider_id": provider_id})
        return provider

    def _load_services(self, service_ids: Sequence[str]) -> List[Service]:
        found = {service.id: service for service in self.service_repository.get_many(service_ids)}
        missing = [service_id for service_id in service_ids if service_id not in found]
        if missing:
            raise NotFoundException("One or more services do not exist.", details={"service_ids": missing})
        return [found[service_id] for service_id in service_ids]

    def _load_areas(self, area_ids: Sequence[str]) -> List[ServiceArea]:
        found = {area.id: area for area in self.area_repository.get_many(area_ids)}
        missing = [area_id for area_id in area_ids if area_id not in found]
        if missing:
            raise NotFoundException(
                "One or more service areas do not exist.", details={"service_area_ids": missing}
            )
        return [found[area_id] for area_id in area_ids]

    @staticmethod
    def _build_schedules(data: ProviderApplication) -> List[Schedule]:
        return [
            Schedule(day_of_week=int(slot.day_of_week), start_time=slot.start_time, end_time=slot.end_time)
            for slot in data.schedules
        ]
