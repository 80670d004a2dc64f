"""
Fasting session lifecycle engine.

Coordinates the session state machine, tick evaluation, milestone
idempotency, profile updates and notification scheduling:

Host tick → Tick Evaluation → Milestone Markers → Notifications
                            ↘ Auto-completion → Profile → Idle
"""

import threading
from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from structlog.contextvars import bound_contextvars

from .config.defaults import notification_params_from_config
from .config.loader import merge_with_defaults
from .config.validation import ConfigValidator
from .data.plans import PlanCatalog
from .data.timeline import TimelineProvider
from .errors import (
    AlreadyActiveError,
    MalformedDataError,
    NoActiveSessionError,
    PersistenceError,
    UnknownPlanError,
)
from .metrics.progress import (
    calculate_elapsed_hours,
    calculate_elapsed_seconds,
    calculate_progress,
    calculate_remaining_time,
    is_fast_successful,
)
from .metrics.streaks import (
    apply_completion,
    calculate_level_progress,
    fasts_needed_for_next_level,
    level_name,
)
from .notifications.base import BaseNotificationScheduler, NotificationRequest
from .notifications.memory_scheduler import InMemoryNotificationScheduler
from .notifications.planner import NotificationPlanner
from .persistence.base import BaseSessionStore
from .state.machine import eval_session_tick
from .state.models import (
    MilestoneDefinition,
    Plan,
    Profile,
    ProfileSummary,
    Session,
    SessionState,
    Snapshot,
    StageStatus,
    TickEvaluation,
    TimelineStage,
)
from .state.runtime import MilestoneTracker
from .state.transitions import apply_transition, resolve_terminal
from .utils.time import SECONDS_PER_HOUR, ensure_aware, resolve_timezone, utc_now

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[Snapshot], None]


class FastingSessionEngine:
    """
    Main coordinator for the fasting session lifecycle.

    Owns the only mutable session state. The host drives it by calling
    tick() on its own cadence; the engine spawns no threads. An open session
    found in the store at construction time is resumed.
    """

    def __init__(
        self,
        store: BaseSessionStore,
        plan_catalog: Optional[PlanCatalog] = None,
        timeline: Optional[TimelineProvider] = None,
        scheduler: Optional[BaseNotificationScheduler] = None,
        config: Optional[dict[str, Any]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ) -> None:
        """
        Initialize the engine and resume any open session.

        Args:
            store: Durable session store
            plan_catalog: Plan lookup, built from config when None
            timeline: Milestone timeline, built from config when None
            scheduler: Notification scheduler, in-memory when None
            config: Partial or merged config dict, completed with defaults
            clock: Callable returning the current time, UTC now by default

        Raises:
            MalformedDataError: if the configuration is invalid
        """
        self.logger = logger
        self.config = merge_with_defaults(config)

        validation_errors = ConfigValidator.validate_config(self.config)
        if validation_errors:
            error_msgs = [f"{err.field}: {err.message} (got: {err.value})" for err in validation_errors]
            self.logger.error("Configuration validation failed", errors=error_msgs)
            raise MalformedDataError(
                "Invalid engine configuration",
                raw_data="; ".join(error_msgs),
                expected_format="see ConfigValidator",
                context={"errors": error_msgs}
            )

        self.store = store
        self.plan_catalog = plan_catalog if plan_catalog is not None else PlanCatalog.from_config(self.config)
        self.timeline = timeline if timeline is not None else TimelineProvider.from_config(self.config)
        self.scheduler = scheduler if scheduler is not None else InMemoryNotificationScheduler()
        self.clock = clock or utc_now

        self.tz = resolve_timezone(self.config["time"]["timezone"])
        self.level_thresholds = tuple(self.config["levels"]["thresholds"])
        self.planner = NotificationPlanner(notification_params_from_config(self.config), self.tz)
        self.tracker = MilestoneTracker(store)

        # Serializes ticks and lifecycle calls
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._active: Optional[Session] = None
        self._active_plan: Optional[Plan] = None
        self._listeners: list[SnapshotListener] = []

        self._resume()

        self.logger.info(
            "Fasting session engine initialized",
            state=self._state.value,
            plans=len(self.plan_catalog),
            milestones=len(self.timeline.entries),
            timezone=self.config["time"]["timezone"],
            scheduler=self.scheduler.get_stats()
        )

    # Queries

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_session(self) -> Optional[Session]:
        return self._active

    @property
    def tick_interval_seconds(self) -> float:
        """Suggested cadence for the host's tick timer."""
        return float(self.config["engine"]["tick_interval_seconds"])

    def snapshot(self, now: Optional[datetime] = None) -> Snapshot:
        """Derived values for the active session without side effects."""
        now = self._now(now)
        session = self._active
        if self._state != SessionState.ACTIVE or session is None:
            return Snapshot.idle()
        return self._build_snapshot(session, self._active_plan, now)

    def get_profile(self) -> Profile:
        return self.store.load_profile()

    def get_profile_summary(self) -> ProfileSummary:
        """Profile with level name and progress toward the next level."""
        profile = self.store.load_profile()
        return ProfileSummary(
            profile=profile,
            level_name=level_name(profile.level),
            fasts_to_next_level=fasts_needed_for_next_level(
                profile.total_completed_fasts, self.level_thresholds
            ),
            level_progress=calculate_level_progress(
                profile.total_completed_fasts, self.level_thresholds
            )
        )

    def get_history(self) -> list[Session]:
        """All sessions, most recent first."""
        return sorted(self.store.load_all(), key=lambda s: s.start_time, reverse=True)

    def timeline_view(self, now: Optional[datetime] = None) -> list[TimelineStage]:
        """
        Milestones with their stage status for the active session.

        When idle, every stage is listed as locked.
        """
        session = self._active
        if self._state != SessionState.ACTIVE or session is None:
            return [
                TimelineStage(milestone=m, status=StageStatus.LOCKED)
                for m in self.timeline.stages_up_to(None)
            ]

        elapsed_hours = calculate_elapsed_hours(session, self._now(now))
        return [
            TimelineStage(milestone=m, status=self.timeline.status_for(m, elapsed_hours))
            for m in self.timeline.stages_up_to(self._target_hours())
        ]

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register a callback receiving every snapshot the engine publishes."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Lifecycle

    def start(self, plan_id: str, now: Optional[datetime] = None) -> Session:
        """
        Start a new fasting session.

        Args:
            plan_id: Catalog id of the plan
            now: Start time, the engine clock by default

        Returns:
            The persisted open session

        Raises:
            AlreadyActiveError: if a session is already open
            UnknownPlanError: if the plan id is not in the catalog
            PersistenceError: if the session cannot be stored
        """
        with self._lock:
            if self._state == SessionState.ACTIVE and self._active is not None:
                raise AlreadyActiveError(
                    "A fasting session is already active",
                    active_session_id=self._active.id,
                    context={"requested_plan_id": plan_id}
                )

            plan = self.plan_catalog.lookup(plan_id)
            if plan is None:
                raise UnknownPlanError(f"Unknown fasting plan: {plan_id}", plan_id=plan_id)

            now = self._now(now)
            session = Session(plan_id=plan_id, start_time=now)

            self.store.append(session)
            self.tracker.begin(session.session_key)

            self._active = session
            self._active_plan = plan
            self._state = apply_transition(
                self._state,
                SessionState.ACTIVE,
                session.session_key,
                trigger="start",
                context={
                    "session_id": session.id,
                    "plan_id": plan_id,
                    "target_hours": plan.fasting_hours,
                    "time_boxed": plan.is_time_based,
                    "start_time": now.isoformat()
                }
            )

            for request in self.planner.plan_session_start(session, plan, now):
                self._schedule(request)

            snapshot = self._build_snapshot(session, plan, now)

        self._publish(snapshot)
        return session

    def tick(self, now: Optional[datetime] = None) -> Snapshot:
        """
        Evaluate the active session at the current wall-clock time.

        A tick arriving while another one is in flight is coalesced: it
        returns a snapshot without performing any side effect.

        Args:
            now: Evaluation time, the engine clock by default

        Returns:
            Snapshot after applying milestone and completion side effects
        """
        now = self._now(now)

        if not self._lock.acquire(blocking=False):
            self.logger.debug("Tick coalesced with in-flight tick", now=now.isoformat())
            return self.snapshot(now)

        try:
            session = self._active
            if self._state != SessionState.ACTIVE or session is None:
                return Snapshot.idle()

            with bound_contextvars(session_key=session.session_key):
                target_hours = self._target_hours()
                evaluation = eval_session_tick(
                    session,
                    target_hours,
                    self.timeline.stages_up_to(target_hours),
                    self.tracker.notified,
                    now
                )

                if evaluation.should_complete:
                    snapshot = self._auto_complete(session, evaluation, now)
                else:
                    notified = self._notify_milestones(session, evaluation.newly_reached, now)
                    snapshot = self._build_snapshot(
                        session, self._active_plan, now, new_milestones=notified
                    )
        finally:
            self._lock.release()

        self._publish(snapshot)
        return snapshot

    def end(self, now: Optional[datetime] = None) -> bool:
        """
        End the active session at the user's request.

        Returns:
            Whether the fast counted as successful

        Raises:
            NoActiveSessionError: if no session is active
            PersistenceError: if the closed session cannot be stored; the
                session stays active
        """
        with self._lock:
            session = self._require_active("end")
            plan = self._active_plan
            now = self._now(now)

            closed = self._close(session, now)

            if closed.completed:
                self._update_profile(closed, now)

            self._cancel_notifications(closed.session_key)
            request = self.planner.fast_ended(closed, plan, now)
            if request is not None:
                self._schedule(request)

            self.tracker.discard()
            self._clear_active()
            self._state = resolve_terminal(
                SessionState.ACTIVE,
                SessionState.COMPLETED if closed.completed else SessionState.ABANDONED,
                closed.session_key,
                trigger="end",
                context={
                    "session_id": closed.id,
                    "actual_fasting_hours": round(closed.actual_fasting_hours, 4),
                    "completed": closed.completed
                }
            )

            snapshot = self._closed_snapshot(closed, plan, now, auto_completed=False)

        self._publish(snapshot)
        return closed.completed

    def cancel(self, now: Optional[datetime] = None) -> Session:
        """
        Abandon the active session.

        The record is closed as incomplete and the profile is left untouched.

        Returns:
            The closed session

        Raises:
            NoActiveSessionError: if no session is active
            PersistenceError: if the closed session cannot be stored; the
                session stays active
        """
        with self._lock:
            session = self._require_active("cancel")
            plan = self._active_plan
            now = self._now(now)

            actual_hours = calculate_elapsed_hours(session, now)
            closed = self.store.update_by_id(
                session.id,
                lambda stored: stored.with_end(now, actual_hours, completed=False)
            )

            self._cancel_notifications(closed.session_key)
            self.tracker.discard()
            self._clear_active()
            self._state = resolve_terminal(
                SessionState.ACTIVE,
                SessionState.ABANDONED,
                closed.session_key,
                trigger="cancel",
                context={
                    "session_id": closed.id,
                    "actual_fasting_hours": round(actual_hours, 4)
                }
            )

            snapshot = self._closed_snapshot(closed, plan, now, auto_completed=False)

        self._publish(snapshot)
        return closed

    # Internals

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_aware(now if now is not None else self.clock())

    def _target_hours(self) -> Optional[int]:
        return self._active_plan.fasting_hours if self._active_plan else None

    def _require_active(self, operation: str) -> Session:
        if self._state != SessionState.ACTIVE or self._active is None:
            raise NoActiveSessionError(
                f"No active fasting session to {operation}",
                operation=operation
            )
        return self._active

    def _clear_active(self) -> None:
        self._active = None
        self._active_plan = None

    def _resume(self) -> None:
        """Adopt an open session left in the store by a previous process."""
        open_sessions = self.store.open_sessions()
        if not open_sessions:
            return

        session = open_sessions[0]

        if len(open_sessions) > 1:
            self.logger.warning(
                "Multiple open sessions found, adopting the most recent",
                adopted_session_id=session.id,
                session_ids=[s.id for s in open_sessions]
            )
            for stale in open_sessions[1:]:
                self._abandon_stale(stale)

        plan = self.plan_catalog.lookup(session.plan_id)
        if plan is None:
            self.logger.warning(
                "Resumed session references unknown plan, treating as not time-boxed",
                session_id=session.id,
                plan_id=session.plan_id
            )

        notified = self.tracker.resume(session.session_key)

        self._active = session
        self._active_plan = plan
        self._state = apply_transition(
            self._state,
            SessionState.ACTIVE,
            session.session_key,
            trigger="resume",
            context={
                "session_id": session.id,
                "plan_id": session.plan_id,
                "elapsed_hours": round(calculate_elapsed_hours(session, self._now(None)), 4),
                "notified": sorted(notified)
            }
        )

    def _abandon_stale(self, stale: Session) -> None:
        """Close an older open record as incomplete so only one stays open."""
        now = self._now(None)
        actual_hours = calculate_elapsed_hours(stale, now)

        self.store.update_by_id(
            stale.id,
            lambda stored: stored.with_end(now, actual_hours, completed=False)
        )
        try:
            self.store.clear_notified_stages(stale.session_key)
        except PersistenceError as e:
            self.logger.warning(
                "Failed to clear markers of stale session",
                session_key=stale.session_key,
                error=str(e)
            )

        self.logger.warning(
            "Stale open session abandoned",
            session_id=stale.id,
            plan_id=stale.plan_id,
            actual_fasting_hours=round(actual_hours, 4)
        )

    def _close(self, session: Session, now: datetime) -> Session:
        """Persist the session closed at `now` with its success flag."""
        target_hours = self._target_hours()
        actual_hours = calculate_elapsed_hours(session, now)
        completed = is_fast_successful(
            session.with_end(now, actual_hours, completed=False),
            target_hours
        )

        return self.store.update_by_id(
            session.id,
            lambda stored: stored.with_end(now, actual_hours, completed)
        )

    def _auto_complete(
        self,
        session: Session,
        evaluation: TickEvaluation,
        now: datetime
    ) -> Snapshot:
        """Close a session whose target has elapsed and return to IDLE."""
        plan = self._active_plan

        try:
            closed = self._close(session, now)
        except PersistenceError as e:
            self.logger.error(
                "Auto-completion could not be persisted, session stays active",
                session_id=session.id,
                session_key=session.session_key,
                error=str(e)
            )
            return self._build_snapshot(session, plan, now)

        if closed.completed:
            self._update_profile(closed, now)

        self._cancel_notifications(closed.session_key)
        self._schedule(self.planner.fast_completed(closed, plan, now))

        self.tracker.discard()
        self._clear_active()
        self._state = resolve_terminal(
            SessionState.ACTIVE,
            SessionState.COMPLETED,
            closed.session_key,
            trigger="auto_complete",
            context={
                "session_id": closed.id,
                "actual_fasting_hours": round(closed.actual_fasting_hours, 4),
                "progress": evaluation.progress
            }
        )

        return self._closed_snapshot(closed, plan, now, auto_completed=True)

    def _notify_milestones(
        self,
        session: Session,
        newly_reached: tuple[MilestoneDefinition, ...],
        now: datetime
    ) -> tuple[MilestoneDefinition, ...]:
        """
        Persist each crossed milestone, then schedule its notification.

        A marker write failure stops the walk; the remaining milestones are
        retried on the next tick.
        """
        notified = []

        for milestone in newly_reached:
            try:
                self.tracker.mark(milestone.hour_offset)
            except PersistenceError as e:
                self.logger.error(
                    "Milestone marker could not be persisted, retrying next tick",
                    session_key=session.session_key,
                    hour_offset=milestone.hour_offset,
                    error=str(e)
                )
                break

            notified.append(milestone)

            request = self.planner.stage_reached(session, milestone, now)
            if request is not None:
                self._schedule(request)

        return tuple(notified)

    def _update_profile(self, closed: Session, now: datetime) -> None:
        """Fold a successful session into the profile; failures are logged."""
        try:
            profile = self.store.load_profile()
            updated = apply_completion(
                profile,
                closed,
                self.store.load_all(),
                now,
                self.tz,
                self.level_thresholds
            )
            self.store.save_profile(updated)
        except PersistenceError as e:
            self.logger.error(
                "Profile update failed after session was closed",
                session_id=closed.id,
                error=str(e)
            )
            return

        self.logger.info(
            "Profile updated",
            session_id=closed.id,
            level=updated.level,
            total_completed_fasts=updated.total_completed_fasts,
            current_streak=updated.current_streak,
            longest_streak=updated.longest_streak
        )

    def _schedule(self, request: NotificationRequest) -> None:
        """Hand a request to the scheduler; scheduler failures never stop the engine."""
        try:
            self.scheduler.schedule(request)
        except Exception as e:
            self.logger.warning(
                "Notification scheduling failed",
                session_key=request.session_key,
                identifier=request.identifier,
                error=str(e),
                error_type=type(e).__name__
            )

    def _cancel_notifications(self, session_key: str) -> None:
        try:
            self.scheduler.cancel_all_for(session_key)
        except Exception as e:
            self.logger.warning(
                "Notification cancellation failed",
                session_key=session_key,
                error=str(e),
                error_type=type(e).__name__
            )

    def _build_snapshot(
        self,
        session: Session,
        plan: Optional[Plan],
        now: datetime,
        new_milestones: tuple[MilestoneDefinition, ...] = ()
    ) -> Snapshot:
        target_hours = plan.fasting_hours if plan else None
        elapsed = calculate_elapsed_seconds(session, now)
        remaining = calculate_remaining_time(session, target_hours, now)
        elapsed_hours = elapsed / SECONDS_PER_HOUR

        return Snapshot(
            state=self._state,
            elapsed_seconds=elapsed,
            remaining_seconds=remaining.remaining_seconds if remaining else None,
            progress=calculate_progress(session, target_hours, now),
            session_id=session.id,
            session_key=session.session_key,
            plan_id=session.plan_id,
            target_end_time=remaining.end_time if remaining else None,
            reached_milestones=tuple(
                m for m in self.timeline.stages_up_to(target_hours)
                if m.hour_offset <= elapsed_hours
            ),
            new_milestones=new_milestones
        )

    def _closed_snapshot(
        self,
        closed: Session,
        plan: Optional[Plan],
        now: datetime,
        auto_completed: bool
    ) -> Snapshot:
        target_hours = plan.fasting_hours if plan else None
        remaining = calculate_remaining_time(closed, target_hours, now)

        return Snapshot(
            state=self._state,
            elapsed_seconds=calculate_elapsed_seconds(closed, now),
            remaining_seconds=remaining.remaining_seconds if remaining else None,
            progress=calculate_progress(closed, target_hours, now),
            session_id=closed.id,
            session_key=closed.session_key,
            plan_id=closed.plan_id,
            target_end_time=remaining.end_time if remaining else None,
            auto_completed=auto_completed,
            completed_session=closed
        )

    def _publish(self, snapshot: Snapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.warning(
                    "Snapshot listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e)
                )
