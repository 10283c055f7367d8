# backend/marketplace/schemas/review.py
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from ..models.review import REVIEW_COMMENT_MAX_LENGTH, Review
from ._strict_base import StrictRequestModel
from .base import StandardizedModel


class ReviewCreate(StrictRequestModel):
    booking_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=REVIEW_COMMENT_MAX_LENGTH)

    @field_validator("comment")
    @classmethod
    def clean_comment(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class ReviewResponse(StandardizedModel):
    id: str
    booking_id: str
    provider_id: str
    rating: int
    comment: Optional[str] = None
    reviewer_name: str
    created_at: datetime

    @classmethod
    def from_review(cls, review: Review) -> "ReviewResponse":
        return cls(
            id=review.id,
            booking_id=review.booking_id,
            provider_id=review.provider_id,
            rating=review.rating,
            comment=review.comment,
            reviewer_name=review.customer.full_name if review.customer else "",
            created_at=review.created_at,
        )
