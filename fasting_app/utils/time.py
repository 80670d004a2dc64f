"""
Wall-clock time utilities for session timing.

Elapsed, remaining and progress values are derived from a session's
wall-clock start time on every call, so a process that was suspended or
restarted computes the same values as one that ticked the whole time.
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SECONDS_PER_HOUR = 3600


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(ts: datetime) -> datetime:
    """
    Treat naive datetimes as UTC.

    Args:
        ts: Datetime that may lack tzinfo

    Returns:
        Timezone-aware datetime
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def session_key_for(start_time: datetime) -> str:
    """
    Derive the deterministic session key from a start time.

    The key is the Unix epoch seconds of the start time, so resumption can
    find a session's persisted markers without a database join.
    """
    return str(int(ensure_aware(start_time).timestamp()))


def elapsed_seconds(start_time: datetime, end_time: Optional[datetime] = None) -> float:
    """
    Calculate elapsed wall-clock seconds between two timestamps.

    Args:
        start_time: Start timestamp
        end_time: End timestamp, defaults to now

    Returns:
        Elapsed seconds (negative if end precedes start)
    """
    if end_time is None:
        end_time = utc_now()

    return (ensure_aware(end_time) - ensure_aware(start_time)).total_seconds()


def hours_to_timedelta(hours: float) -> timedelta:
    return timedelta(seconds=hours * SECONDS_PER_HOUR)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Resolve a configured timezone name.

    Args:
        name: IANA name, "UTC", or None

    Returns:
        tzinfo instance; UTC when name is empty

    Raises:
        ZoneInfoNotFoundError: if the name is unknown
    """
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def is_valid_timezone(name: Optional[str]) -> bool:
    try:
        resolve_timezone(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def local_date(ts: datetime, tz: tzinfo) -> date:
    """Calendar day of a timestamp in the given timezone."""
    return ensure_aware(ts).astimezone(tz).date()


def format_timestamp(ts: Optional[datetime]) -> Optional[str]:
    """UTC ISO8601 string for storage and logging, None passes through."""
    if ts is None:
        return None
    return ensure_aware(ts).astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO8601 string written by format_timestamp."""
    if value is None:
        return None
    return ensure_aware(datetime.fromisoformat(value))
