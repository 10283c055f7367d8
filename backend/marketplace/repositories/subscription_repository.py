# backend/marketplace/repositories/subscription_repository.py
from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.subscription import Subscription, SubscriptionPlan
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[Subscription]):
    def __init__(self, db: Session):
        super().__init__(db, Subscription)

    def get_latest_active(self, provider_id: str, now: datetime) -> Optional[Subscription]:
        """The subscription with the furthest end date that has not expired yet."""
        try:
            return (
                self.db.query(Subscription)
                .options(selectinload(Subscription.plan))
                .filter(Subscription.provider_id == provider_id, Subscription.end_date > now)
                .order_by(Subscription.end_date.desc())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error("Error loading subscription for %s: %s", provider_id, e)
            raise RepositoryException(f"Failed to load subscription: {e}") from e


class SubscriptionPlanRepository(BaseRepository[SubscriptionPlan]):
    def __init__(self, db: Session):
        super().__init__(db, SubscriptionPlan)

    def list_ordered(self) -> List[SubscriptionPlan]:
        try:
            return self.db.query(SubscriptionPlan).order_by(SubscriptionPlan.duration_in_days).all()
        except SQLAlchemyError as e:
            logger.error("Error listing plans: %s", e)
            raise RepositoryException(f"Failed to list plans: {e}") from e
