from __future__ import annotations

from datetime import datetime, time
from functools import lru_cache
from zoneinfo import ZoneInfo

from hr_onboarding.core.config import settings


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_zone() -> ZoneInfo:
    return _zone(settings.calendar_timezone or "UTC")


def now_local_naive() -> datetime:
    """Return current time in the calendar timezone as naive datetime for DATETIME columns."""
    return datetime.now(local_zone()).replace(tzinfo=None)


def to_local_naive(value: datetime) -> datetime:
    """Normalize a datetime to the calendar timezone and strip tzinfo for DATETIME columns."""
    if value.tzinfo is None:
        return value
    return value.astimezone(local_zone()).replace(tzinfo=None)


def parse_time_of_day(raw: str | None) -> time | None:
    """Parse "HH:MM" into a time; None or blank gives None."""
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    parts = value.split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError("invalid_time_of_day")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError("invalid_time_of_day")
    return time(hour, minute)
