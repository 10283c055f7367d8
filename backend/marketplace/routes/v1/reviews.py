# backend/marketplace/routes/v1/reviews.py
"""
Reviews routes - API v1

Endpoints:
    POST /                          → Submit a review for a completed booking (customer)
    GET /booking/{booking_id}       → Review of a booking (participants)
    GET /provider/{provider_id}     → Recent reviews of a provider
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_review_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.review import ReviewCreate, ReviewResponse
from ...services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews-v1"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(
    payload: ReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    try:
        review = await asyncio.to_thread(
            service.submit_review,
            current_user,
            payload.booking_id,
            payload.rating,
            payload.comment,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReviewResponse.from_review(review)


@router.get("/booking/{booking_id}", response_model=Optional[ReviewResponse])
async def get_review_for_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
) -> Optional[ReviewResponse]:
    try:
        review = await asyncio.to_thread(service.get_review_for_booking, current_user, booking_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReviewResponse.from_review(review) if review else None


@router.get("/provider/{provider_id}", response_model=List[ReviewResponse])
async def list_provider_reviews(
    provider_id: str,
    limit: int = Query(50, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
) -> List[ReviewResponse]:
    reviews = await asyncio.to_thread(service.list_provider_reviews, provider_id, limit)
    return [ReviewResponse.from_review(review) for review in reviews]
