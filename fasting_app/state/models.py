"""
Session lifecycle data models.

This module defines immutable data structures for fasting sessions, plans,
milestone definitions, the aggregate profile, and the snapshots the engine
returns from each tick.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from ..utils.time import session_key_for


class SessionState(str, Enum):
    """Engine lifecycle states."""
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class SessionStatus(str, Enum):
    """History label for a stored session."""
    ACTIVE = "active"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"


class StageStatus(str, Enum):
    """Progress state of a milestone relative to elapsed time."""
    REACHED = "reached"
    UPCOMING = "upcoming"
    LOCKED = "locked"


class StageCategory(str, Enum):
    """Grouping category for timeline milestones."""
    METABOLIC = "metabolic"
    HORMONAL = "hormonal"
    CELLULAR = "cellular"
    RECOVERY = "recovery"


@dataclass(frozen=True)
class Session:
    """One fasting attempt, open or closed."""

    plan_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    completed: bool = False
    actual_fasting_hours: float = 0.0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def session_key(self) -> str:
        """Deterministic key derived from the start time."""
        return session_key_for(self.start_time)

    @property
    def status(self) -> SessionStatus:
        if self.end_time is None:
            return SessionStatus.ACTIVE
        if self.completed:
            return SessionStatus.COMPLETED
        return SessionStatus.INCOMPLETE

    @property
    def reference_time(self) -> datetime:
        """End time when closed, start time otherwise; used for day bucketing."""
        return self.end_time or self.start_time

    def with_end(self, end_time: datetime, actual_fasting_hours: float,
                 completed: bool) -> 'Session':
        """Close the session with its final duration and success flag."""
        return replace(
            self,
            end_time=end_time,
            actual_fasting_hours=actual_fasting_hours,
            completed=completed
        )


@dataclass(frozen=True)
class Plan:
    """Read-only fasting protocol reference data."""

    id: str
    name: str
    fasting_hours: Optional[int] = None
    eating_hours: Optional[int] = None
    description: str = ""
    tags: tuple[str, ...] = ()

    @property
    def is_time_based(self) -> bool:
        """Plans without fasting hours are not time-boxed."""
        return self.fasting_hours is not None


@dataclass(frozen=True)
class MilestoneDefinition:
    """Static, hour-offset-keyed physiological stage description."""

    hour_offset: int
    label: str
    detail: str
    category: StageCategory = StageCategory.METABOLIC


@dataclass(frozen=True)
class Profile:
    """Aggregate statistics, recomputed incrementally on each completion."""

    level: int = 1
    total_completed_fasts: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_hours_fasted: float = 0.0
    last_fasting_date: Optional[datetime] = None


@dataclass(frozen=True)
class ProfileSummary:
    """Profile plus derived level information for display."""

    profile: Profile
    level_name: str
    fasts_to_next_level: int
    level_progress: float


@dataclass(frozen=True)
class Snapshot:
    """Derived timing values for the active session at a given instant."""

    state: SessionState
    elapsed_seconds: float = 0.0
    remaining_seconds: Optional[float] = None
    progress: float = 0.0
    session_id: Optional[str] = None
    session_key: Optional[str] = None
    plan_id: Optional[str] = None
    target_end_time: Optional[datetime] = None
    reached_milestones: tuple[MilestoneDefinition, ...] = ()
    new_milestones: tuple[MilestoneDefinition, ...] = ()
    auto_completed: bool = False
    completed_session: Optional[Session] = None

    @property
    def elapsed_hours(self) -> float:
        return self.elapsed_seconds / 3600

    @classmethod
    def idle(cls) -> 'Snapshot':
        return cls(state=SessionState.IDLE)


@dataclass(frozen=True)
class TimelineStage:
    """Milestone paired with its status at a given elapsed time."""

    milestone: MilestoneDefinition
    status: StageStatus


@dataclass(frozen=True)
class TickEvaluation:
    """Result of evaluating one tick against the active session."""

    elapsed_seconds: float
    remaining_seconds: Optional[float]
    progress: float
    target_end_time: Optional[datetime]
    should_complete: bool = False
    newly_reached: tuple[MilestoneDefinition, ...] = ()
