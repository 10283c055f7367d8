# backend/marketplace/repositories/review_repository.py
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.review import Review
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReviewRepository(BaseRepository[Review]):
    def __init__(self, db: Session):
        super().__init__(db, Review)

    def get_by_booking(self, booking_id: str) -> Optional[Review]:
        return self.find_one_by(booking_id=booking_id)

    def list_for_provider(self, provider_id: str, limit: int = 50) -> List[Review]:
        try:
            return (
                self.db.query(Review)
                .options(selectinload(Review.customer))
                .filter(Review.provider_id == provider_id)
                .order_by(Review.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing reviews for provider %s: %s", provider_id, e)
            raise RepositoryException(f"Failed to list reviews: {e}") from e
