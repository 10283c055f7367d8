# backend/marketplace/routes/v1/subscriptions.py
"""
Subscription routes - API v1

Endpoints:
    GET /plans      → Available plans
    GET /status     → Current provider's subscription status
    POST /activate  → Record a confirmed payment (admin / payment webhook)
"""

import asyncio
from dataclasses import asdict
import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies.auth import get_current_user, require_admin
from ...api.dependencies.services import get_subscription_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.subscription import (
    SubscriptionActivate,
    SubscriptionPlanResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
)
from ...services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions-v1"])


@router.get("/plans", response_model=List[SubscriptionPlanResponse])
async def list_plans(
    service: SubscriptionService = Depends(get_subscription_service),
) -> List[SubscriptionPlanResponse]:
    plans = await asyncio.to_thread(service.list_plans)
    return [SubscriptionPlanResponse.from_plan(plan) for plan in plans]


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_my_status(
    current_user: User = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionStatusResponse:
    try:
        result = await asyncio.to_thread(service.get_status, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return SubscriptionStatusResponse(**asdict(result))


@router.post("/activate", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def activate_subscription(
    payload: SubscriptionActivate,
    _: User = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    try:
        subscription = await asyncio.to_thread(
            service.activate, payload.provider_id, payload.plan_id, payload.payment_reference
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return SubscriptionResponse.from_subscription(subscription)
