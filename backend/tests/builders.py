"""Row builders shared by the test modules. Each builder commits what it creates."""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from marketplace.auth import create_access_token
from marketplace.core.enums import BookingStatus, RoleName
from marketplace.core.timezone_utils import marketplace_now, utc_now
from marketplace.models.booking import Booking, BookingServiceItem
from marketplace.models.catalog import Service, ServiceArea, ServiceCategory
from marketplace.models.provider import Schedule, ServiceProvider
from marketplace.models.subscription import Subscription, SubscriptionPlan
from marketplace.models.user import User

WORKDAY = (time(8, 0), time(20, 0))


@dataclass
class Catalog:
    category: ServiceCategory
    cleaning: Service
    plumbing: Service
    area: ServiceArea
    other_area: ServiceArea

    @property
    def services(self) -> List[Service]:
        return [self.cleaning, self.plumbing]


def make_user(
    db: Session,
    full_name: str,
    role: RoleName = RoleName.CUSTOMER,
    email: Optional[str] = None,
    is_active: bool = True,
) -> User:
    user = User(
        full_name=full_name,
        email=email or f"{full_name.lower().replace(' ', '.')}@example.com",
        role=role.value,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


def make_catalog(db: Session) -> Catalog:
    category = ServiceCategory(name="Home Services", description="Cleaning and repairs")
    cleaning = Service(
        category=category,
        name="Deep Cleaning",
        base_price=Decimal("25.00"),
        estimated_hours=Decimal("2.00"),
    )
    plumbing = Service(
        category=category,
        name="Plumbing",
        base_price=Decimal("15.50"),
        estimated_hours=Decimal("1.00"),
    )
    area = ServiceArea(city="Amman", name="Abdoun")
    other_area = ServiceArea(city="Irbid", name="University Street")
    db.add_all([category, cleaning, plumbing, area, other_area])
    db.commit()
    return Catalog(category, cleaning, plumbing, area, other_area)


def weekly_schedule(
    days: Iterable[int] = range(7), window=WORKDAY
) -> List[Schedule]:
    return [Schedule(day_of_week=day, start_time=window[0], end_time=window[1]) for day in days]


def make_provider(
    db: Session,
    catalog: Catalog,
    full_name: str,
    email: Optional[str] = None,
    services: Optional[Sequence[Service]] = None,
    areas: Optional[Sequence[ServiceArea]] = None,
    schedules: Optional[List[Schedule]] = None,
    subscribed: bool = True,
    is_active: bool = True,
    is_verified: bool = True,
    user: Optional[User] = None,
) -> ServiceProvider:
    """A provider that is eligible for the main area unless told otherwise."""
    if user is None:
        user = make_user(db, full_name, role=RoleName.SERVICE_PROVIDER, email=email)
    provider = ServiceProvider(
        user_id=user.id,
        bio=f"{full_name} has ten years of experience.",
        is_active=is_active,
        is_verified=is_verified,
        services=list(services if services is not None else catalog.services),
        service_areas=list(areas if areas is not None else [catalog.area]),
        schedules=schedules if schedules is not None else weekly_schedule(),
    )
    db.add(provider)
    if subscribed:
        now = utc_now()
        db.add(
            Subscription(
                provider_id=user.id,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=30),
            )
        )
    db.commit()
    return provider


def make_plan(db: Session, name: str = "Monthly", price: str = "10.00", days: int = 30) -> SubscriptionPlan:
    plan = SubscriptionPlan(name=name, price=Decimal(price), duration_in_days=days)
    db.add(plan)
    db.commit()
    return plan


def next_weekday(weekday: int, hour: int = 10, minute: int = 0, weeks_ahead: int = 0) -> datetime:
    """Naive marketplace wall-clock time on the next ``weekday`` strictly after today."""
    day = marketplace_now().date() + timedelta(days=1)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    day += timedelta(weeks=weeks_ahead)
    return datetime(day.year, day.month, day.day, hour, minute)


def future_slot(hour: int = 10, days_ahead: int = 3) -> datetime:
    day = marketplace_now().date() + timedelta(days=days_ahead)
    return datetime(day.year, day.month, day.day, hour, 0)


def make_booking(
    db: Session,
    customer: User,
    provider: ServiceProvider,
    area: ServiceArea,
    services: Sequence[Service],
    scheduled_at: Optional[datetime] = None,
    status: BookingStatus = BookingStatus.PENDING,
) -> Booking:
    """Insert a booking directly, bypassing matching."""
    start = scheduled_at or future_slot()
    hours = sum((Decimal(service.estimated_hours) for service in services), Decimal("0"))
    booking = Booking(
        customer_id=customer.id,
        service_provider_id=provider.user_id,
        service_area_id=area.id,
        status=status.value,
        scheduled_at=start,
        scheduled_end_at=start + timedelta(hours=float(max(hours, Decimal("1")))),
        total_amount=sum((Decimal(service.base_price) for service in services), Decimal("0")),
        total_estimated_hours=hours,
        address="12 Rainbow Street",
        latitude=31.95,
        longitude=35.91,
        items=[
            BookingServiceItem(
                service_id=service.id,
                price_at_booking=service.base_price,
                estimated_hours=service.estimated_hours,
            )
            for service in services
        ],
    )
    if status == BookingStatus.COMPLETED:
        booking.completed_at = utc_now()
    db.add(booking)
    db.commit()
    return booking


def auth_headers_for(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
