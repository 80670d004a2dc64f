"""In-process notification scheduler that records requests."""

import threading
from datetime import datetime
from typing import Any

from .base import BaseNotificationScheduler, NotificationRequest


class InMemoryNotificationScheduler(BaseNotificationScheduler):
    """Records scheduled requests and cancellations for inspection."""

    def __init__(self, name: str = "memory"):
        super().__init__(name)
        self._lock = threading.Lock()
        self.requests: list[NotificationRequest] = []
        self.cancelled_keys: list[str] = []
        self._pending: dict[str, NotificationRequest] = {}

    def schedule_at(self, session_key: str, fire_time: datetime, payload: dict[str, Any]) -> None:
        identifier = payload.get("identifier") or f"{payload.get('kind', 'notification')}_{session_key}"
        request = NotificationRequest(
            identifier=identifier,
            session_key=session_key,
            fire_time=fire_time,
            payload=dict(payload)
        )

        with self._lock:
            self.requests.append(request)
            self._pending[identifier] = request
            self._scheduled_count += 1

        self.logger.debug(
            "Notification scheduled",
            scheduler=self.name,
            session_key=session_key,
            identifier=identifier,
            kind=payload.get("kind"),
            fire_time=fire_time.isoformat()
        )

    def cancel_all_for(self, session_key: str) -> None:
        with self._lock:
            self.cancelled_keys.append(session_key)
            self._pending = {
                identifier: request
                for identifier, request in self._pending.items()
                if request.session_key != session_key
            }
            self._cancel_count += 1

        self.logger.debug("Notifications cancelled", scheduler=self.name, session_key=session_key)

    def pending(self) -> list[NotificationRequest]:
        """Requests not cancelled, ordered by fire time."""
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: r.fire_time)

    def of_kind(self, kind: str) -> list[NotificationRequest]:
        """All recorded requests of one kind, cancelled ones included."""
        return [r for r in self.requests if r.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self.requests.clear()
            self.cancelled_keys.clear()
            self._pending.clear()
