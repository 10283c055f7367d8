# backend/marketplace/routes/v1/providers.py
"""
Provider routes - API v1

Endpoints:
    POST /apply                     → Apply to become a provider
    GET /me                         → Own provider profile
    PUT /me                         → Replace own profile
    PUT /me/availability            → Switch own availability
    GET /pending                    → Unverified applications (admin)
    GET /{provider_id}              → Public provider profile
    PUT /{provider_id}/approve      → Approve an application (admin)
    PUT /{provider_id}/reject       → Reject an application (admin)
    PUT /{provider_id}/active       → Activate or deactivate a provider (admin)
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_user, require_admin
from ...api.dependencies.services import get_provider_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.base import MessageResponse
from ...schemas.provider import (
    ProviderActiveUpdate,
    ProviderApplication,
    ProviderProfileResponse,
    ProviderSummary,
)
from ...services.provider_service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["providers-v1"])


@router.post("/apply", response_model=ProviderProfileResponse, status_code=status.HTTP_201_CREATED)
async def apply_as_provider(
    payload: ProviderApplication,
    current_user: User = Depends(get_current_user),
    service: ProviderService = Depends(get_provider_service),
) -> ProviderProfileResponse:
    try:
        provider = await asyncio.to_thread(service.apply, current_user, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProviderProfileResponse.from_provider(provider)


@router.get("/me", response_model=ProviderProfileResponse)
async def get_my_profile(
    current_user: User = Depends(get_current_user),
    service: ProviderService = Depends(get_provider_service),
) -> ProviderProfileResponse:
    try:
        provider = await asyncio.to_thread(service.get_my_profile, current_user)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProviderProfileResponse.from_provider(provider)


@router.put("/me", response_model=ProviderProfileResponse)
async def update_my_profile(
    payload: ProviderApplication,
    current_user: User = Depends(get_current_user),
    service: ProviderService = Depends(get_provider_service),
) -> ProviderProfileResponse:
    try:
        provider = await asyncio.to_thread(service.update_profile, current_user, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProviderProfileResponse.from_provider(provider)


@router.put("/me/availability", response_model=ProviderProfileResponse)
async def set_my_availability(
    payload: ProviderActiveUpdate,
    current_user: User = Depends(get_current_user),
    service: ProviderService = Depends(get_provider_service),
) -> ProviderProfileResponse:
    try:
        provider = await asyncio.to_thread(
            service.set_own_availability, current_user, payload.is_active
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProviderProfileResponse.from_provider(provider)


@router.get("/pending", response_model=List[ProviderSummary])
async def list_pending_providers(
    _: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> List[ProviderSummary]:
    providers = await asyncio.to_thread(service.list_pending)
    return [ProviderSummary.from_provider(provider) for provider in providers]


@router.get("/{provider_id}", response_model=ProviderProfileResponse)
async def get_provider(
    provider_id: str,
    service: ProviderService = Depends(get_provider_service),
) -> ProviderProfileResponse:
    try:
        provider = await asyncio.to_thread(service.get_profile, provider_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProviderProfileResponse.from_provider(provider)


@router.put("/{provider_id}/approve", response_model=MessageResponse)
async def approve_provider(
    provider_id: str,
    _: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(service.approve, provider_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Provider approved.")


@router.put("/{provider_id}/reject", response_model=MessageResponse)
async def reject_provider(
    provider_id: str,
    reason: Optional[str] = Query(None, max_length=500),
    _: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(service.reject, provider_id, reason)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Provider application rejected.")


@router.put("/{provider_id}/active", response_model=ProviderSummary)
async def set_provider_active(
    provider_id: str,
    payload: ProviderActiveUpdate,
    _: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> ProviderSummary:
    try:
        provider = await asyncio.to_thread(service.set_active, provider_id, payload.is_active)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProviderSummary.from_provider(provider)
