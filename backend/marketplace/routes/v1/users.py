# backend/marketplace/routes/v1/users.py
"""
User routes - API v1

Endpoints:
    GET /me  → The authenticated user's profile
    PUT /me  → Update name, email or phone
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_user_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.user import UserProfileUpdate, UserResponse
from ...services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users-v1"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    payload: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    try:
        user = await asyncio.to_thread(service.update_profile, current_user, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
    return UserResponse.model_validate(user)
