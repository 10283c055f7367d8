# backend/marketplace/repositories/provider_repository.py
"""
Provider Repository.

Holds the provider eligibility query. Eligibility is expressed as a chain of
named filter stages, each taking a query and returning a narrowed query, so a
single stage can be exercised on its own and ``find_eligible`` reads as the
list of rules it enforces.
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import FrozenSet, List, Optional, Sequence

from sqlalchemy import and_, distinct, exists, func, select, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.enums import OPEN_BOOKING_STATUSES
from ..core.exceptions import ProviderQueryTimeoutException, RepositoryException
from ..models.booking import Booking
from ..models.provider import Schedule, ServiceProvider, provider_service_areas, provider_services
from ..models.subscription import Subscription
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# SQLSTATE for query_canceled (statement_timeout)
_PG_QUERY_CANCELED = "57014"


@dataclass(frozen=True)
class EligibilityCriteria:
    """
    Everything the eligibility query needs for one booking request.

    ``scheduled_at``/``scheduled_end_at`` are naive marketplace wall-clock
    times; ``now`` is aware UTC and is compared with subscription end dates.
    """

    area_id: str
    service_ids: Sequence[str]
    scheduled_at: datetime
    now: datetime
    customer_id: Optional[str] = None
    exclude_provider_ids: FrozenSet[str] = field(default_factory=frozenset)
    scheduled_end_at: Optional[datetime] = None
    exclude_busy: bool = False
    exclude_booking_id: Optional[str] = None


class ProviderRepository(BaseRepository[ServiceProvider]):
    def __init__(self, db: Session):
        super().__init__(db, ServiceProvider)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            selectinload(ServiceProvider.user),
            selectinload(ServiceProvider.schedules),
        )

    # ------------------------------------------------------------------
    # Eligibility filter stages
    # ------------------------------------------------------------------

    @staticmethod
    def filter_active(query: Query) -> Query:
        return query.filter(ServiceProvider.is_active.is_(True))

    @staticmethod
    def filter_subscribed(query: Query, now: datetime) -> Query:
        """At least one subscription whose end date has not passed."""
        return query.filter(
            exists().where(
                and_(
                    Subscription.provider_id == ServiceProvider.user_id,
                    Subscription.end_date >= now,
                )
            )
        )

    @staticmethod
    def filter_area(query: Query, area_id: str) -> Query:
        return query.filter(
            exists().where(
                and_(
                    provider_service_areas.c.provider_id == ServiceProvider.user_id,
                    provider_service_areas.c.area_id == area_id,
                )
            )
        )

    @staticmethod
    def filter_services(query: Query, service_ids: Sequence[str]) -> Query:
        """Every requested service must be offered, not just one of them."""
        wanted = set(service_ids)
        if not wanted:
            return query
        offered_count = (
            select(func.count(distinct(provider_services.c.service_id)))
            .where(
                provider_services.c.provider_id == ServiceProvider.user_id,
                provider_services.c.service_id.in_(wanted),
            )
            .scalar_subquery()
        )
        return query.filter(offered_count == len(wanted))

    @staticmethod
    def filter_schedule(query: Query, scheduled_at: datetime) -> Query:
        """A slot on the same weekday whose inclusive window covers the time of day."""
        time_of_day = scheduled_at.time()
        return query.filter(
            exists().where(
                and_(
                    Schedule.provider_id == ServiceProvider.user_id,
                    Schedule.day_of_week == scheduled_at.weekday(),
                    Schedule.start_time <= time_of_day,
                    Schedule.end_time >= time_of_day,
                )
            )
        )

    @staticmethod
    def filter_exclusions(
        query: Query, exclude_provider_ids: FrozenSet[str], customer_id: Optional[str]
    ) -> Query:
        """Drop explicitly excluded providers and the requesting customer (no self-booking)."""
        excluded = set(exclude_provider_ids)
        if customer_id:
            excluded.add(customer_id)
        if not excluded:
            return query
        return query.filter(ServiceProvider.user_id.notin_(excluded))

    @staticmethod
    def filter_not_busy(
        query: Query,
        scheduled_at: datetime,
        scheduled_end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> Query:
        """Drop providers holding an open booking that overlaps ``[start, end)``."""
        conditions = [
            Booking.service_provider_id == ServiceProvider.user_id,
            Booking.status.in_([s.value for s in OPEN_BOOKING_STATUSES]),
            Booking.scheduled_at < scheduled_end_at,
            Booking.scheduled_end_at > scheduled_at,
        ]
        if exclude_booking_id:
            conditions.append(Booking.id != exclude_booking_id)
        return query.filter(~exists().where(and_(*conditions)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def build_eligibility_query(self, criteria: EligibilityCriteria) -> Query:
        query = self.db.query(ServiceProvider)
        query = self.filter_active(query)
        query = self.filter_subscribed(query, criteria.now)
        query = self.filter_area(query, criteria.area_id)
        query = self.filter_services(query, criteria.service_ids)
        query = self.filter_schedule(query, criteria.scheduled_at)
        query = self.filter_exclusions(
            query, criteria.exclude_provider_ids, criteria.customer_id
        )
        if criteria.exclude_busy and criteria.scheduled_end_at is not None:
            query = self.filter_not_busy(
                query,
                criteria.scheduled_at,
                criteria.scheduled_end_at,
                criteria.exclude_booking_id,
            )
        return query.options(selectinload(ServiceProvider.user)).order_by(ServiceProvider.user_id)

    def find_eligible(
        self, criteria: EligibilityCriteria, timeout_ms: Optional[int] = None
    ) -> List[ServiceProvider]:
        """
        Providers satisfying every eligibility stage.

        Read-only. On PostgreSQL the query runs under a transaction-local
        statement timeout; a cancelled statement raises
        ProviderQueryTimeoutException.
        """
        use_timeout = bool(timeout_ms) and self.dialect_name == "postgresql"
        try:
            if use_timeout:
                self.db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
            providers = self.build_eligibility_query(criteria).all()
            if use_timeout:
                self.db.execute(text("SET LOCAL statement_timeout = DEFAULT"))
            return providers
        except OperationalError as e:
            if getattr(e.orig, "pgcode", None) == _PG_QUERY_CANCELED:
                logger.warning("Provider eligibility query exceeded %sms", timeout_ms)
                raise ProviderQueryTimeoutException(int(timeout_ms or 0)) from e
            logger.error("Error running provider eligibility query: %s", e)
            raise RepositoryException(f"Failed to find eligible providers: {e}") from e
        except SQLAlchemyError as e:
            logger.error("Error running provider eligibility query: %s", e)
            raise RepositoryException(f"Failed to find eligible providers: {e}") from e

    def get_with_details(self, user_id: str) -> Optional[ServiceProvider]:
        return self.get_by_id(user_id, load_relationships=True)

    def list_pending_verification(self) -> List[ServiceProvider]:
        try:
            return (
                self._apply_eager_loading(self.db.query(ServiceProvider))
                .filter(ServiceProvider.is_verified.is_(False))
                .order_by(ServiceProvider.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Error listing unverified providers: %s", e)
            raise RepositoryException(f"Failed to list providers: {e}") from e
