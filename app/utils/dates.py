"""Timezone helpers for the marketplace's local calendar."""

from datetime import UTC, date, datetime, time, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from app.config import settings


@lru_cache
def local_timezone() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def local_now() -> datetime:
    return datetime.now(local_timezone())


def local_today() -> date:
    return local_now().date()


def to_local_date(value: datetime) -> date:
    """Calendar date of an instant in the local timezone (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(local_timezone()).date()


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC instants covering ``day`` in the local timezone, end exclusive."""
    start = datetime.combine(day, time.min, tzinfo=local_timezone())
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=local_timezone())
    return start.astimezone(UTC), end.astimezone(UTC)


def next_weekday(day: date, weekday_name: str, include_today: bool = False) -> date:
    """Next occurrence of a weekday name ('wednesday') on or after ``day``."""
    names = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
    target = names.index(weekday_name.lower())
    delta = (target - day.weekday()) % 7
    if delta == 0 and not include_today:
        delta = 7
    return day + timedelta(days=delta)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    from calendar import monthrange

    _, last_day = monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)
