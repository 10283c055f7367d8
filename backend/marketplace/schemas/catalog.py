# backend/marketplace/schemas/catalog.py
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field

from ..models.catalog import Service, ServiceArea, ServiceCategory
from ..services.formatting import format_currency, format_estimated_time
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel


class AreaResponse(StandardizedModel):
    id: str
    name: str


class CityResponse(StandardizedModel):
    city: str
    areas: List[AreaResponse]

    @classmethod
    def from_grouped(cls, grouped: Dict[str, List[ServiceArea]]) -> List["CityResponse"]:
        return [
            cls(city=city, areas=[AreaResponse(id=area.id, name=area.name) for area in areas])
            for city, areas in grouped.items()
        ]


class ServiceResponse(StandardizedModel):
    id: str
    category_id: str
    name: str
    description: Optional[str] = None
    base_price: Money
    formatted_price: str
    estimated_hours: Money
    formatted_estimated_time: str

    @classmethod
    def from_service(cls, service: Service) -> "ServiceResponse":
        return cls(
            id=service.id,
            category_id=service.category_id,
            name=service.name,
            description=service.description,
            base_price=service.base_price,
            formatted_price=format_currency(service.base_price),
            estimated_hours=service.estimated_hours,
            formatted_estimated_time=format_estimated_time(service.estimated_hours),
        )


class CategoryResponse(StandardizedModel):
    id: str
    name: str
    description: Optional[str] = None
    services: List[ServiceResponse]

    @classmethod
    def from_category(cls, category: ServiceCategory) -> "CategoryResponse":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            services=[ServiceResponse.from_service(s) for s in category.services if s.is_active],
        )


class ServicePriceUpdate(StrictRequestModel):
    base_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
