"""Streak and level calculations over session history"""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Sequence

from ..state.models import Profile, Session
from ..utils.time import local_date

LEVEL_THRESHOLDS: tuple[int, ...] = (5, 15, 30)
LEVEL_NAMES = {
    1: "Beginner",
    2: "Consistent",
    3: "Advanced",
    4: "Expert",
}
MAX_LEVEL = len(LEVEL_THRESHOLDS) + 1


def calculate_current_streak(
    sessions: Iterable[Session],
    today: date,
    tz: tzinfo = timezone.utc
) -> int:
    """
    Count consecutive calendar days, ending today, with a completed session.

    Days are the local calendar date of each session's end time (start time
    when the end time is missing). The walk starts at today and stops at the
    first expected day without a completed session.

    Args:
        sessions: Session history, in any order
        today: Current local calendar day
        tz: Timezone used to bucket timestamps into days

    Returns:
        Current streak length, 0 for empty history
    """
    completed = sorted(
        (s for s in sessions if s.completed),
        key=lambda s: s.reference_time,
        reverse=True
    )

    streak = 0
    expected = today

    for session in completed:
        session_day = local_date(session.reference_time, tz)

        if session_day == expected:
            streak += 1
            expected = expected - timedelta(days=1)
        elif session_day < expected:
            break
        # Later than expected: another fast on an already counted day

    return streak


def calculate_level(completed_fasts: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """
    Calculate level based on completed fasts

    0-4 -> 1, 5-14 -> 2, 15-29 -> 3, 30+ -> 4 with the default thresholds.
    """
    level = 1
    for threshold in thresholds:
        if completed_fasts >= threshold:
            level += 1
    return level


def level_name(level: int) -> str:
    return LEVEL_NAMES.get(level, "Unknown")


def fasts_needed_for_next_level(
    current_fasts: int,
    thresholds: Sequence[int] = LEVEL_THRESHOLDS
) -> int:
    """
    Calculate fasts needed to reach the next level

    Returns:
        Fasts remaining until the next threshold, 0 at max level
    """
    for threshold in thresholds:
        if current_fasts < threshold:
            return max(0, threshold - current_fasts)
    return 0


def calculate_level_progress(
    completed_fasts: int,
    thresholds: Sequence[int] = LEVEL_THRESHOLDS
) -> float:
    """
    Fraction of the way from the current level's threshold to the next one.

    Returns:
        Value in 0..1, 1.0 at max level
    """
    level = calculate_level(completed_fasts, thresholds)
    if level > len(thresholds):
        return 1.0

    bounds = (0, *thresholds)
    current_threshold = bounds[level - 1]
    next_threshold = bounds[level]
    progress = (completed_fasts - current_threshold) / (next_threshold - current_threshold)

    return min(1.0, max(0.0, progress))


def apply_completion(
    profile: Profile,
    session: Session,
    sessions: Iterable[Session],
    now: datetime,
    tz: tzinfo = timezone.utc,
    thresholds: Sequence[int] = LEVEL_THRESHOLDS
) -> Profile:
    """
    Fold one successful session into the profile.

    Args:
        profile: Profile before the completion
        session: The session that just completed
        sessions: Full history including the completed session
        now: Current wall-clock time
        tz: Timezone for calendar-day bucketing

    Returns:
        New profile with counters, level and streaks updated
    """
    total = profile.total_completed_fasts + 1
    streak = calculate_current_streak(sessions, local_date(now, tz), tz)

    return replace(
        profile,
        total_completed_fasts=total,
        total_hours_fasted=profile.total_hours_fasted + session.actual_fasting_hours,
        last_fasting_date=session.end_time,
        level=calculate_level(total, thresholds),
        current_streak=streak,
        longest_streak=max(profile.longest_streak, streak)
    )
