"""Base classes for notification schedulers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import structlog


class NotificationKind(str, Enum):
    """Kinds of notification the engine asks the host to deliver."""
    START_CONFIRMATION = "start_confirmation"
    CUSTOM_REMINDER = "custom_reminder"
    NEARLY_DONE = "nearly_done"
    HEALTH_TIP = "health_tip"
    STAGE_REACHED = "stage_reached"
    FAST_ENDED = "fast_ended"
    FAST_COMPLETED = "fast_completed"


@dataclass(frozen=True)
class NotificationRequest:
    """One scheduling request for a session."""
    identifier: str
    session_key: str
    fire_time: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return self.payload.get("kind", "")


class BaseNotificationScheduler(ABC):
    """
    Base class for notification schedulers.

    Delivery is the host's concern; a scheduler only accepts requests and
    cancellations keyed by session. Failures raise SchedulerError.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = structlog.get_logger(f"fasting.notifications.{name}")
        self._scheduled_count = 0
        self._cancel_count = 0

    @abstractmethod
    def schedule_at(self, session_key: str, fire_time: datetime, payload: dict[str, Any]) -> None:
        """
        Schedule a notification for a session.

        Args:
            session_key: Key of the session the notification belongs to
            fire_time: When the host should deliver it
            payload: kind, title, body, identifier and kind-specific fields

        Raises:
            SchedulerError: if the request cannot be accepted
        """
        pass

    @abstractmethod
    def cancel_all_for(self, session_key: str) -> None:
        """
        Cancel every pending notification of a session.

        Raises:
            SchedulerError: if the cancellation cannot be recorded
        """
        pass

    def schedule(self, request: NotificationRequest) -> None:
        """Schedule a planned request."""
        payload = dict(request.payload)
        payload.setdefault("identifier", request.identifier)
        self.schedule_at(request.session_key, request.fire_time, payload)

    def get_stats(self) -> dict[str, Any]:
        """Get scheduling statistics."""
        return {
            "name": self.name,
            "scheduled_count": self._scheduled_count,
            "cancel_count": self._cancel_count,
        }
