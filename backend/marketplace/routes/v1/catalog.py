# backend/marketplace/routes/v1/catalog.py
"""
Catalog routes - API v1

Endpoints:
    GET /areas                          → Service areas grouped by city
    GET /categories                     → Categories with their active services
    GET /services/{service_id}          → One service
    PATCH /services/{service_id}/price  → Change a service's price (admin)
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import get_catalog_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.catalog import CategoryResponse, CityResponse, ServicePriceUpdate, ServiceResponse
from ...services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog-v1"])


@router.get("/areas", response_model=List[CityResponse])
async def list_areas(service: CatalogService = Depends(get_catalog_service)) -> List[CityResponse]:
    grouped = await asyncio.to_thread(service.list_areas_by_city)
    return CityResponse.from_grouped(grouped)


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    service: CatalogService = Depends(get_catalog_service),
) -> List[CategoryResponse]:
    categories = await asyncio.to_thread(service.list_categories)
    return [CategoryResponse.from_category(category) for category in categories]


@router.get("/services/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: str, service: CatalogService = Depends(get_catalog_service)
) -> ServiceResponse:
    try:
        item = await asyncio.to_thread(service.get_service, service_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ServiceResponse.from_service(item)


@router.patch("/services/{service_id}/price", response_model=ServiceResponse)
async def update_service_price(
    service_id: str,
    payload: ServicePriceUpdate,
    _: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    try:
        item = await asyncio.to_thread(service.update_service_price, service_id, payload.base_price)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ServiceResponse.from_service(item)
