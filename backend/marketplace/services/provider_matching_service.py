# backend/marketplace/services/provider_matching_service.py
"""
Provider Matching Service.

Eligibility query plus single pick. Used for new bookings and for
reassignment after a provider rejects or cancels.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..core.timezone_utils import utc_now
from ..models.provider import ServiceProvider
from ..repositories.catalog_repository import ServiceAreaRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.provider_repository import EligibilityCriteria, ProviderRepository
from .base import BaseService
from .provider_selection import ProviderSelector, get_default_selector, select_one

logger = logging.getLogger(__name__)

AREA_NOT_AVAILABLE_MESSAGE = "The requested service area is not available."


class ProviderMatchingService(BaseService):
    def __init__(
        self,
        db: Session,
        selector: Optional[ProviderSelector] = None,
        provider_repository: Optional[ProviderRepository] = None,
        area_repository: Optional[ServiceAreaRepository] = None,
    ):
        super().__init__(db)
        self.selector = selector or get_default_selector()
        self.provider_repository = provider_repository or RepositoryFactory.create_provider_repository(db)
        self.area_repository = area_repository or RepositoryFactory.create_service_area_repository(db)

    @BaseService.measure_operation("find_eligible_providers")
    def find_eligible(
        self,
        area_id: str,
        service_ids: Sequence[str],
        scheduled_at: datetime,
        exclude_provider_ids: Iterable[str] = (),
        customer_id: Optional[str] = None,
        scheduled_end_at: Optional[datetime] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> List[ServiceProvider]:
        """
        Providers eligible for the request. An empty list is a normal outcome.

        Raises:
            NotFoundException: ``area_id`` does not exist
            ProviderQueryTimeoutException: the query ran past its time budget
        """
        if self.area_repository.get_by_id(area_id) is None:
            raise NotFoundException(AREA_NOT_AVAILABLE_MESSAGE, details={"service_area_id": area_id})

        criteria = EligibilityCriteria(
            area_id=area_id,
            service_ids=tuple(service_ids),
            scheduled_at=scheduled_at,
            now=utc_now(),
            customer_id=customer_id,
            exclude_provider_ids=frozenset(exclude_provider_ids),
            scheduled_end_at=scheduled_end_at,
            exclude_busy=settings.booking_exclude_busy_providers,
            exclude_booking_id=exclude_booking_id,
        )
        eligible = self.provider_repository.find_eligible(
            criteria, timeout_ms=settings.provider_query_timeout_ms
        )
        logger.debug(
            "Eligible providers for area=%s services=%s at %s: %d",
            area_id,
            list(service_ids),
            scheduled_at,
            len(eligible),
        )
        return eligible

    def select_one(self, eligible: Sequence[ServiceProvider]) -> ServiceProvider:
        """Raises NoProviderAvailableException when ``eligible`` is empty."""
        return select_one(eligible, self.selector)

    def match(self, area_id: str, service_ids: Sequence[str], scheduled_at: datetime, **kwargs) -> ServiceProvider:
        return self.select_one(self.find_eligible(area_id, service_ids, scheduled_at, **kwargs))

    @staticmethod
    def claim(provider: ServiceProvider) -> None:
        """
        Stamp the assignment on the provider row.

        The update bumps the provider's row version, so a concurrent
        transaction that picked the same provider fails its flush.
        """
        provider.last_assigned_at = utc_now()
