"""
Timezone utilities for the marketplace.

Two clocks are in play: audit timestamps and subscription windows are
timezone-aware UTC, while booking schedules are naive wall-clock times in the
marketplace timezone (a provider working "Monday 09:00-17:00" means local time).
"""

from datetime import datetime, timezone
from typing import Optional

import pytz

from .config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_marketplace_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.marketplace_timezone)


def marketplace_now() -> datetime:
    """Current naive wall-clock time in the marketplace timezone."""
    return datetime.now(get_marketplace_timezone()).replace(tzinfo=None)


def to_marketplace_wall_clock(value: datetime) -> datetime:
    """
    Normalize a requested schedule time to naive marketplace wall-clock time.

    Naive input is taken as already local; aware input is converted first.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(get_marketplace_timezone()).replace(tzinfo=None)
