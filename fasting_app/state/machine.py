"""
Core session tick evaluation.

This module implements the pure per-tick evaluation of an active fasting
session: derive elapsed/remaining/progress from wall-clock time, decide
whether the session auto-completes, and find milestones crossed but not yet
notified. It performs no I/O; the engine applies the resulting side effects.
"""

from datetime import datetime
from typing import AbstractSet, Iterable, Optional

from ..logging.config import get_milestone_logger, log_milestone_decision
from ..metrics.progress import (
    calculate_elapsed_seconds,
    calculate_progress,
    calculate_remaining_time,
)
from ..utils.time import SECONDS_PER_HOUR
from .models import MilestoneDefinition, Session, TickEvaluation

milestone_logger = get_milestone_logger(__name__)


def eval_session_tick(
    session: Session,
    target_hours: Optional[int],
    milestones: Iterable[MilestoneDefinition],
    notified: AbstractSet[int],
    now: datetime
) -> TickEvaluation:
    """
    Evaluate one tick for an open session.

    Args:
        session: The open session
        target_hours: Plan target hours (None for plans that are not time-boxed)
        milestones: Timeline entries in ascending hour order
        notified: Hour offsets already notified for this session
        now: Current wall-clock time

    Returns:
        TickEvaluation; newly_reached is empty when the session completes
    """
    elapsed = calculate_elapsed_seconds(session, now)
    remaining = calculate_remaining_time(session, target_hours, now)
    progress = calculate_progress(session, target_hours, now)

    remaining_seconds = remaining.remaining_seconds if remaining else None
    target_end_time = remaining.end_time if remaining else None

    if should_auto_complete(target_hours, remaining_seconds, progress):
        return TickEvaluation(
            elapsed_seconds=elapsed,
            remaining_seconds=0.0,
            progress=progress,
            target_end_time=target_end_time,
            should_complete=True
        )

    newly_reached = detect_new_milestones(
        session.session_key,
        elapsed / SECONDS_PER_HOUR,
        milestones,
        notified
    )

    return TickEvaluation(
        elapsed_seconds=elapsed,
        remaining_seconds=remaining_seconds,
        progress=progress,
        target_end_time=target_end_time,
        should_complete=False,
        newly_reached=newly_reached
    )


def should_auto_complete(
    target_hours: Optional[int],
    remaining_seconds: Optional[float],
    progress: float
) -> bool:
    """Time-boxed sessions complete once the target is fully elapsed."""
    if target_hours is None or remaining_seconds is None:
        return False
    return remaining_seconds <= 0 and progress >= 100.0


def detect_new_milestones(
    session_key: str,
    elapsed_hours: float,
    milestones: Iterable[MilestoneDefinition],
    notified: AbstractSet[int]
) -> tuple[MilestoneDefinition, ...]:
    """
    Find milestones crossed by elapsed time that were not notified yet.

    Args:
        session_key: Key of the session being evaluated (for logging)
        elapsed_hours: Elapsed hours since session start
        milestones: Timeline entries
        notified: Hour offsets already notified

    Returns:
        Newly crossed milestones in ascending hour order
    """
    crossed = []

    for milestone in sorted(milestones, key=lambda m: m.hour_offset):
        reached = milestone.hour_offset <= elapsed_hours
        if not reached:
            break

        already_notified = milestone.hour_offset in notified
        log_milestone_decision(
            milestone_logger,
            session_key=session_key,
            hour_offset=milestone.hour_offset,
            reached=reached,
            already_notified=already_notified,
            context={"elapsed_hours": round(elapsed_hours, 4)}
        )

        if not already_notified:
            crossed.append(milestone)

    return tuple(crossed)
