"""Pure calculators for session progress, streaks and levels"""

from .progress import (
    RemainingTime,
    calculate_elapsed_hours,
    calculate_elapsed_seconds,
    calculate_progress,
    calculate_remaining_time,
    format_time_remaining,
    is_fast_successful,
)
from .streaks import (
    apply_completion,
    calculate_current_streak,
    calculate_level,
    calculate_level_progress,
    fasts_needed_for_next_level,
    level_name,
)

__all__ = [
    "RemainingTime",
    "calculate_elapsed_hours",
    "calculate_elapsed_seconds",
    "calculate_progress",
    "calculate_remaining_time",
    "format_time_remaining",
    "is_fast_successful",
    "apply_completion",
    "calculate_current_streak",
    "calculate_level",
    "calculate_level_progress",
    "fasts_needed_for_next_level",
    "level_name",
]
