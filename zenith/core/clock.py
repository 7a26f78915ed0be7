"""Calendar-day helpers shared by the streak, points, and generation logic.

All stored timestamps are timezone-aware. Calendar-day comparisons are made in
the configured time zone so "today" matches the user's wall clock.
"""

from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from zenith.core.config import settings


Clock = Callable[[], datetime]


def get_timezone(name: str | None = None) -> tzinfo:
    """Resolve a time zone name, defaulting to the configured one."""
    zone = name or settings.timezone
    if zone.upper() == "UTC":
        return UTC
    return ZoneInfo(zone)


def utc_now() -> datetime:
    """Default clock used by the engines."""
    return datetime.now(UTC)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def calendar_day(moment: datetime, tz: tzinfo | None = None) -> date:
    """Return the calendar day a moment falls on in the given time zone."""
    return ensure_aware(moment).astimezone(tz or get_timezone()).date()


def start_of_day(moment: datetime, tz: tzinfo | None = None) -> datetime:
    """Return midnight of the moment's calendar day, as an aware datetime."""
    zone = tz or get_timezone()
    return datetime.combine(calendar_day(moment, zone), time.min, tzinfo=zone)


def is_same_day(first: datetime, second: datetime, tz: tzinfo | None = None) -> bool:
    """Check whether two moments share a calendar day."""
    return calendar_day(first, tz) == calendar_day(second, tz)


def days_between(earlier: datetime, later: datetime, tz: tzinfo | None = None) -> int:
    """Whole calendar days from ``earlier``'s day to ``later``'s day."""
    return (calendar_day(later, tz) - calendar_day(earlier, tz)).days


def days_ago(now: datetime, days: int) -> datetime:
    """Shift a moment back by a number of days."""
    return now - timedelta(days=days)
