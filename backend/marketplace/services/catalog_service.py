# backend/marketplace/services/catalog_service.py
"""Catalog Service: service areas, categories and service pricing."""

from decimal import Decimal
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, ValidationException
from ..models.catalog import Service, ServiceArea, ServiceCategory
from ..repositories.catalog_repository import (
    ServiceAreaRepository,
    ServiceCategoryRepository,
    ServiceRepository,
)
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class CatalogService(BaseService):
    def __init__(
        self,
        db: Session,
        service_repository: Optional[ServiceRepository] = None,
        category_repository: Optional[ServiceCategoryRepository] = None,
        area_repository: Optional[ServiceAreaRepository] = None,
    ):
        super().__init__(db)
        self.service_repository = service_repository or RepositoryFactory.create_service_repository(db)
        self.category_repository = (
            category_repository or RepositoryFactory.create_service_category_repository(db)
        )
        self.area_repository = area_repository or RepositoryFactory.create_service_area_repository(db)

    def list_areas_by_city(self) -> Dict[str, List[ServiceArea]]:
        """Areas grouped by city; cities and areas alphabetical."""
        grouped: Dict[str, List[ServiceArea]] = {}
        for area in self.area_repository.list_ordered():
            grouped.setdefault(area.city, []).append(area)
        return grouped

    def list_categories(self) -> List[ServiceCategory]:
        return self.category_repository.list_with_services()

    def get_service(self, service_id: str) -> Service:
        service = self.service_repository.get_by_id(service_id)
        if service is None:
            raise NotFoundException("Service not found", details={"service_id": service_id})
        return service

    @BaseService.measure_operation("update_service_price")
    def update_service_price(self, service_id: str, base_price: Decimal) -> Service:
        """
        Change the catalog price. Existing bookings keep the price snapshotted
        on their line items.
        """
        if base_price <= 0:
            raise ValidationException("Price must be greater than zero", code="INVALID_PRICE")
        service = self.get_service(service_id)
        previous = service.base_price
        with self.transaction():
            service.base_price = base_price
            self.service_repository.flush()
        self.log_operation(
            "update_service_price", service_id=service_id, old_price=previous, new_price=base_price
        )
        return service
