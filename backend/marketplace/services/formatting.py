"""Display formatting shared by API responses (money, durations, chat timestamps)."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from ..core.config import settings
from ..core.timezone_utils import ensure_utc, get_marketplace_timezone, utc_now

Number = Union[Decimal, float, int]


def format_currency(amount: Number, currency_code: Optional[str] = None) -> str:
    """``JOD 1,234.50``"""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{currency_code or settings.currency_code} {value:,.2f}"


def format_estimated_time(hours: Number) -> str:
    total_minutes = int(Decimal(str(hours)) * 60)
    whole_hours, minutes = divmod(total_minutes, 60)

    if whole_hours > 0:
        text = f"{whole_hours} hr" + ("s" if whole_hours > 1 else "")
        if minutes > 0:
            text += f" {minutes} mins"
    elif minutes > 0:
        text = f"{minutes} mins"
    else:
        text = "less than 1 hr"
    return f"Est. Time: {text}"


def format_relative_time(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """
    Chat/inbox style relative time.

    Under a day old shows the local clock time (``3:05 PM``); older than a
    week shows the date (``Mar 5, 2026``).
    """
    moment = ensure_utc(timestamp)
    current = ensure_utc(now) if now is not None else utc_now()
    delta = current - moment
    minutes = delta.total_seconds() / 60

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{int(minutes)} mins ago"

    local = moment.astimezone(get_marketplace_timezone())
    if minutes < 24 * 60:
        hour = local.hour % 12 or 12
        suffix = "AM" if local.hour < 12 else "PM"
        return f"{hour}:{local.minute:02d} {suffix}"

    days = delta.total_seconds() / 86400
    if days < 2:
        return "Yesterday"
    if days < 7:
        return f"{int(days)} days ago"
    return f"{local:%b} {local.day}, {local.year}"
