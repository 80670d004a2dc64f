"""Progress calculations for an open or closed fasting session"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..state.models import Session
from ..utils.time import SECONDS_PER_HOUR, elapsed_seconds, hours_to_timedelta


@dataclass(frozen=True)
class RemainingTime:
    """Seconds left until the target end and the end instant itself"""
    remaining_seconds: float
    end_time: datetime


def calculate_elapsed_seconds(session: Optional[Session], now: datetime) -> float:
    """
    Elapsed wall-clock seconds since the session started.

    Closed sessions stop counting at their end time. Never negative.
    """
    if session is None:
        return 0.0

    end = session.end_time if session.end_time is not None else now
    return max(0.0, elapsed_seconds(session.start_time, end))


def calculate_elapsed_hours(session: Optional[Session], now: datetime) -> float:
    return calculate_elapsed_seconds(session, now) / SECONDS_PER_HOUR


def calculate_remaining_time(
    session: Optional[Session],
    target_hours: Optional[int],
    now: datetime
) -> Optional[RemainingTime]:
    """
    Calculate remaining time in a fasting session

    Args:
        session: The fasting session
        target_hours: Target fasting hours (None for plans that are not time-boxed)
        now: Current wall-clock time

    Returns:
        RemainingTime or None if there is no session, or no target and no end time
    """
    if session is None:
        return None

    if target_hours is not None:
        end_time = session.start_time + hours_to_timedelta(target_hours)
    elif session.end_time is not None:
        end_time = session.end_time
    else:
        return None

    remaining = elapsed_seconds(now, end_time)
    return RemainingTime(remaining_seconds=max(0.0, remaining), end_time=end_time)


def calculate_progress(
    session: Optional[Session],
    target_hours: Optional[int],
    now: datetime
) -> float:
    """
    Calculate progress percentage

    Returns:
        Progress in 0-100, 0 when the session or target is missing
    """
    if session is None or target_hours is None or target_hours <= 0:
        return 0.0

    total_seconds = target_hours * SECONDS_PER_HOUR
    progress = (calculate_elapsed_seconds(session, now) / total_seconds) * 100
    return min(100.0, progress)


def is_fast_successful(session: Session, target_hours: Optional[int]) -> bool:
    """
    Determine if a fast was successful based on target

    Without a target any positive duration counts as a success.
    """
    if target_hours is None:
        return session.actual_fasting_hours > 0
    return session.actual_fasting_hours >= target_hours


def format_time_remaining(seconds: float) -> str:
    """
    Format time remaining into readable string

    Returns:
        "2h 30m" style string, or "45m" under an hour
    """
    total_seconds = int(max(0, seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
