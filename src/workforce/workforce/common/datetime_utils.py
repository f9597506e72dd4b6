from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.constants import DAYS_IN_WEEK, HOURS_PRECISION
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid timestamp {value!r} (expected ISO 8601)")


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    v = (value or "").strip()
    if not v:
        return None
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time {value!r} (expected HH:MM)")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch it.
    """
    return datetime.now()


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day`` (Sunday belongs to the week before)."""
    return day - timedelta(days=day.weekday())


def week_end(start: date) -> date:
    return start + timedelta(days=DAYS_IN_WEEK - 1)


def whole_minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def minutes_to_hours(minutes: int) -> float:
    return round(minutes / 60, HOURS_PRECISION)
