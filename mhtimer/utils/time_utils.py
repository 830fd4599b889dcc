"""Time and duration utilities."""

from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse

UTC = ZoneInfo("UTC")

DURATION_UNITS = {
    "weeks": timedelta(weeks=1),
    "days": timedelta(days=1),
    "hours": timedelta(hours=1),
    "minutes": timedelta(minutes=1),
    "seconds": timedelta(seconds=1),
    "milliseconds": timedelta(milliseconds=1),
}


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string, epoch seconds, or datetime into aware UTC.

    Raises:
        ValueError: if the value cannot be interpreted as a point in time.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, UTC)
    if isinstance(value, str) and value.strip():
        return ensure_utc(isoparse(value.strip()))
    raise ValueError(f"Not a timestamp: {value!r}")


def parse_duration(value: Any) -> timedelta:
    """Parse a duration given as seconds or a mapping of units.

    Examples:
        3600 -> 1 hour
        {"days": 1, "hours": 8} -> 1 day 8 hours

    Raises:
        ValueError: for unknown units or non-numeric amounts.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    if isinstance(value, dict):
        total = timedelta(0)
        for unit, amount in value.items():
            if unit not in DURATION_UNITS:
                raise ValueError(f"Unknown duration unit '{unit}'")
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise ValueError(f"Duration amount for '{unit}' must be a number")
            total += DURATION_UNITS[unit] * amount
        return total
    raise ValueError(f"Not a duration: {value!r}")


def duration_to_seconds(delta: timedelta) -> float | int:
    """Serialize a duration as seconds, using an int when it is whole."""
    seconds = delta.total_seconds()
    return int(seconds) if seconds == int(seconds) else seconds


def end_of_day(now: datetime | None = None) -> datetime:
    """The next UTC midnight after now."""
    if now is None:
        now = utcnow()
    now = ensure_utc(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


def same_utc_day(a: datetime, b: datetime) -> bool:
    """Check whether two datetimes fall on the same UTC calendar day."""
    return ensure_utc(a).date() == ensure_utc(b).date()


def format_duration(delta: timedelta) -> str:
    """Format a duration as days, hours and minutes.

    Examples:
        15 minutes -> "15 minutes"
        1 day 2 hours -> "1 day, 2 hours"
        0 -> "less than a minute"
    """
    total_minutes = int(round(delta.total_seconds() / 60))
    if total_minutes <= 0:
        return "less than a minute"

    days, remainder = divmod(total_minutes, 1440)
    hours, minutes = divmod(remainder, 60)

    parts = []
    if days:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    return ", ".join(parts)


def format_countdown(delta: timedelta) -> str:
    """Compact countdown like "01d 02h 05m"."""
    total_minutes = max(0, int(round(delta.total_seconds() / 60)))
    days, remainder = divmod(total_minutes, 1440)
    hours, minutes = divmod(remainder, 60)
    return f"{days:02d}d {hours:02d}h {minutes:02d}m"


def time_left(dt: datetime, now: datetime | None = None) -> str:
    """Describe how long until dt.

    Examples:
        "in 5 minutes"
        "in 1 day, 3 hours"
        "just now"
    """
    if now is None:
        now = utcnow()

    delta = dt - now
    if delta.total_seconds() < 60:
        return "just now" if delta.total_seconds() >= 0 else f"{format_duration(-delta)} ago"
    return f"in {format_duration(delta)}"
