"""
Notification planning for session lifecycle events.

The planner turns a session, its plan and the user's notification
preferences into NotificationRequest objects. It never talks to a scheduler
itself; the engine hands the requests over and tolerates scheduler failures.
Payloads carry a kind plus the hour or minute offset; hosts resolve richer
content (tips, quotes) from those keys.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from ..config.defaults import NotificationParams
from ..state.models import MilestoneDefinition, Plan, Session
from ..utils.time import ensure_aware, hours_to_timedelta
from .base import NotificationKind, NotificationRequest


def is_in_quiet_hours(fire_time: datetime, start: int, end: int, tz: tzinfo = timezone.utc) -> bool:
    """
    Check if a timestamp falls within a quiet hours window.

    Args:
        fire_time: Timestamp to check
        start: First quiet clock hour
        end: First clock hour after the window
        tz: Timezone of the clock hours

    Returns:
        True if the local hour is inside the window; windows with
        start >= end wrap midnight
    """
    hour = ensure_aware(fire_time).astimezone(tz).hour

    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def _stage_title(hour: int) -> str:
    if hour <= 2:
        return f"Fast Started - Hour {hour}"
    if hour == 8:
        return "Hour 8 - Fat Burning Started!"
    if hour == 12:
        return "Hour 12 - Ketosis Begins!"
    if hour == 16:
        return "Hour 16 - Advanced Level!"
    if 18 <= hour <= 24:
        return f"Hour {hour} - Expert Level!"
    return f"Hour {hour} Completed!"


class NotificationPlanner:
    """Builds scheduling requests from notification preferences."""

    def __init__(self, params: Optional[NotificationParams] = None, tz: tzinfo = timezone.utc):
        self.params = params or NotificationParams()
        self.tz = tz

    def _quiet(self, fire_time: datetime) -> bool:
        if not self.params.quiet_hours_enabled:
            return False
        return is_in_quiet_hours(
            fire_time,
            self.params.quiet_hours_start,
            self.params.quiet_hours_end,
            self.tz
        )

    def _request(
        self,
        kind: NotificationKind,
        session: Session,
        fire_time: datetime,
        title: str,
        body: str,
        suffix: Optional[int] = None,
        **extra
    ) -> NotificationRequest:
        session_key = session.session_key
        identifier = f"{kind.value}_{session_key}"
        if suffix is not None:
            identifier = f"{identifier}_{suffix}"

        payload = {
            "kind": kind.value,
            "identifier": identifier,
            "session_key": session_key,
            "title": title,
            "body": body,
        }
        payload.update(extra)

        return NotificationRequest(
            identifier=identifier,
            session_key=session_key,
            fire_time=fire_time,
            payload=payload
        )

    def plan_session_start(
        self,
        session: Session,
        plan: Optional[Plan],
        now: datetime
    ) -> list[NotificationRequest]:
        """
        All requests to schedule when a session starts.

        Args:
            session: The new session
            plan: Its plan (None when unknown, treated as not time-boxed)
            now: Current wall-clock time

        Returns:
            Requests ordered by fire time
        """
        target_hours = plan.fasting_hours if plan else None
        requests: list[NotificationRequest] = []

        if self.params.enable_start_reminders:
            requests.append(self.start_confirmation(session, plan, now))

        requests.extend(self.custom_reminders(session, now))

        if target_hours is not None:
            target_end = session.start_time + hours_to_timedelta(target_hours)
            requests.extend(self.nearly_done(session, target_end, now))

        requests.extend(self.health_tips(session, target_hours))

        return sorted(requests, key=lambda r: r.fire_time)

    def start_confirmation(
        self,
        session: Session,
        plan: Optional[Plan],
        now: datetime
    ) -> NotificationRequest:
        plan_name = plan.name if plan else session.plan_id
        return self._request(
            NotificationKind.START_CONFIRMATION,
            session,
            now,
            title="Fast Started",
            body=f"{plan_name} fasting window has started!"
        )

    def custom_reminders(
        self,
        session: Session,
        now: datetime,
        reminder_hours: Optional[Iterable[int]] = None
    ) -> list[NotificationRequest]:
        """
        Reminders at fixed hours after session start.

        Reminders inside quiet hours or already in the past are skipped.
        """
        hours = self.params.custom_reminder_hours if reminder_hours is None else reminder_hours
        requests = []

        for hour in hours:
            fire_time = session.start_time + hours_to_timedelta(hour)

            if self._quiet(fire_time):
                continue
            if fire_time <= now:
                continue

            if self.params.enable_motivational_quotes:
                title = f"Fasting Reminder - Hour {hour}"
                body = f"Hour {hour} of your fast. Stay motivated!"
            else:
                title = "Fasting Reminder"
                body = f"{hour} hours completed! Keep going!"

            requests.append(self._request(
                NotificationKind.CUSTOM_REMINDER,
                session,
                fire_time,
                title=title,
                body=body,
                suffix=hour,
                hour=hour,
                motivational=self.params.enable_motivational_quotes
            ))

        return requests

    def nearly_done(
        self,
        session: Session,
        target_end_time: datetime,
        now: datetime
    ) -> list[NotificationRequest]:
        """
        Countdown before the target end of a time-boxed session.

        Only requests more than min_lead_seconds in the future and outside
        quiet hours are produced.
        """
        if not self.params.enable_nearly_done_countdown:
            return []

        requests = []
        for minutes in self.params.nearly_done_minutes:
            fire_time = target_end_time - timedelta(minutes=minutes)

            if self._quiet(fire_time):
                continue
            if (fire_time - now).total_seconds() <= self.params.min_lead_seconds:
                continue

            if minutes >= 60 and minutes % 60 == 0:
                left = f"{minutes // 60} hour{'s' if minutes > 60 else ''}"
            else:
                left = f"{minutes} minutes"

            requests.append(self._request(
                NotificationKind.NEARLY_DONE,
                session,
                fire_time,
                title="Nearly Done!",
                body=f"Almost done! {left} left!",
                suffix=minutes,
                minutes=minutes
            ))

        return requests

    def health_tips(
        self,
        session: Session,
        target_hours: Optional[int]
    ) -> list[NotificationRequest]:
        """
        Health tip reminders at fixed hours strictly below the target.

        Plans without a target get every configured hour.
        """
        if not self.params.enable_health_tips:
            return []

        requests = []
        for hour in self.params.health_tip_hours:
            if target_hours is not None and hour >= target_hours:
                continue

            requests.append(self._request(
                NotificationKind.HEALTH_TIP,
                session,
                session.start_time + hours_to_timedelta(hour),
                title=f"Health Tip - Hour {hour}",
                body=f"A health tip for hour {hour} of your fast.",
                suffix=hour,
                hour=hour
            ))

        return requests

    def stage_reached(
        self,
        session: Session,
        milestone: MilestoneDefinition,
        now: datetime
    ) -> Optional[NotificationRequest]:
        """Immediate notification for a crossed milestone, None when disabled."""
        if not self.params.enable_stage_notifications:
            return None

        return self._request(
            NotificationKind.STAGE_REACHED,
            session,
            now,
            title=_stage_title(milestone.hour_offset),
            body=f"{milestone.label}: {milestone.detail}",
            suffix=milestone.hour_offset,
            hour=milestone.hour_offset,
            category=milestone.category.value
        )

    def fast_ended(
        self,
        session: Session,
        plan: Optional[Plan],
        now: datetime
    ) -> Optional[NotificationRequest]:
        """Notification for a manually ended session, None when disabled."""
        if not self.params.enable_end_reminders:
            return None

        plan_name = plan.name if plan else session.plan_id
        return self._request(
            NotificationKind.FAST_ENDED,
            session,
            now,
            title="Fasting Window Ends",
            body=f"Your {plan_name} fast has ended after {session.actual_fasting_hours:.1f} hours.",
            hours=round(session.actual_fasting_hours, 2),
            completed=session.completed
        )

    def fast_completed(
        self,
        session: Session,
        plan: Optional[Plan],
        now: datetime
    ) -> NotificationRequest:
        """Notification for an auto-completed session."""
        plan_name = plan.name if plan else session.plan_id
        hours = int(session.actual_fasting_hours)
        return self._request(
            NotificationKind.FAST_COMPLETED,
            session,
            now,
            title="Fast Completed!",
            body=f"You successfully completed the {plan_name} plan! It lasted {hours} hours.",
            hours=hours,
            completed=session.completed
        )
