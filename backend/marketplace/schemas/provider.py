# backend/marketplace/schemas/provider.py
"""Provider onboarding and profile schemas."""

from datetime import datetime, time
from typing import Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import DayOfWeek
from ..models.provider import ServiceProvider
from ._strict_base import StrictRequestModel
from .base import StandardizedModel

BIO_MAX_LENGTH = 500


def _unique_ids(values: List[str], label: str) -> List[str]:
    cleaned = [value.strip() for value in values]
    if any(not value for value in cleaned):
        raise ValueError(f"{label} ids cannot be blank")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError(f"Duplicate {label.lower()} ids are not allowed")
    return cleaned


class ScheduleSlot(StandardizedModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def validate_window(self) -> "ScheduleSlot":
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class ProviderApplication(StrictRequestModel):
    """Body for both applying and updating a provider profile; updates replace everything."""

    bio: Optional[str] = Field(default=None, max_length=BIO_MAX_LENGTH)
    service_ids: List[str] = Field(..., min_length=1)
    service_area_ids: List[str] = Field(..., min_length=1)
    schedules: List[ScheduleSlot] = Field(..., min_length=1)

    @field_validator("service_ids")
    @classmethod
    def validate_service_ids(cls, v: List[str]) -> List[str]:
        return _unique_ids(v, "Service")

    @field_validator("service_area_ids")
    @classmethod
    def validate_area_ids(cls, v: List[str]) -> List[str]:
        return _unique_ids(v, "Area")

    @field_validator("schedules")
    @classmethod
    def validate_no_overlap(cls, v: List[ScheduleSlot]) -> List[ScheduleSlot]:
        by_day: Dict[int, List[ScheduleSlot]] = {}
        for slot in v:
            by_day.setdefault(int(slot.day_of_week), []).append(slot)
        for day, slots in by_day.items():
            ordered = sorted(slots, key=lambda slot: slot.start_time)
            for current, following in zip(ordered, ordered[1:]):
                if current.end_time > following.start_time:
                    raise ValueError(f"Schedules overlap on {DayOfWeek(day).name.title()}")
        return v


class ProviderActiveUpdate(StrictRequestModel):
    is_active: bool


class NamedRef(StandardizedModel):
    id: str
    name: str


class CityAreas(StandardizedModel):
    city: str
    areas: List[NamedRef]


class ProviderProfileResponse(StandardizedModel):
    provider_id: str
    full_name: str
    bio: Optional[str] = None
    rating: float
    review_count: int
    is_verified: bool
    is_active: bool
    services: List[NamedRef]
    cities: List[CityAreas]
    schedules: List[ScheduleSlot]
    created_at: datetime

    @classmethod
    def from_provider(cls, provider: ServiceProvider) -> "ProviderProfileResponse":
        cities: Dict[str, List[NamedRef]] = {}
        for area in sorted(provider.service_areas, key=lambda a: (a.city, a.name)):
            cities.setdefault(area.city, []).append(NamedRef(id=area.id, name=area.name))
        schedules = sorted(provider.schedules, key=lambda s: (s.day_of_week, s.start_time))
        return cls(
            provider_id=provider.user_id,
            full_name=provider.display_name,
            bio=provider.bio,
            rating=round(provider.rating or 0.0, 2),
            review_count=provider.review_count or 0,
            is_verified=provider.is_verified,
            is_active=provider.is_active,
            services=[NamedRef(id=s.id, name=s.name) for s in provider.services],
            cities=[CityAreas(city=city, areas=areas) for city, areas in cities.items()],
            schedules=[
                ScheduleSlot(day_of_week=s.day_of_week, start_time=s.start_time, end_time=s.end_time)
                for s in schedules
            ],
            created_at=provider.created_at,
        )


class ProviderSummary(StandardizedModel):
    provider_id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    is_verified: bool
    is_active: bool
    rating: float
    review_count: int
    created_at: datetime

    @classmethod
    def from_provider(cls, provider: ServiceProvider) -> "ProviderSummary":
        user = provider.user
        return cls(
            provider_id=provider.user_id,
            full_name=user.full_name if user else "",
            email=user.email if user else "",
            phone=user.phone if user else None,
            is_verified=provider.is_verified,
            is_active=provider.is_active,
            rating=round(provider.rating or 0.0, 2),
            review_count=provider.review_count or 0,
            created_at=provider.created_at,
        )
