"""
Runtime milestone tracking for the active session.

The notified milestone set is the idempotency record for stage
notifications. It is persisted after every addition so a restart never
re-notifies a milestone, and it is only updated in memory once the store
has acknowledged the write.
"""

from typing import Optional

import structlog

from ..errors import PersistenceError
from ..persistence.base import BaseSessionStore

logger = structlog.get_logger(__name__)


class MilestoneTracker:
    """Tracks which milestone hour offsets were notified for one session."""

    def __init__(self, store: BaseSessionStore):
        self.store = store
        self.logger = logger
        self.session_key: Optional[str] = None
        self._notified: set[int] = set()

    @property
    def notified(self) -> frozenset[int]:
        return frozenset(self._notified)

    def begin(self, session_key: str) -> None:
        """
        Start tracking a fresh session, clearing any stale persisted markers.

        A failed clear is logged; a fresh session key has no markers unless a
        session with the same start second was tracked before.
        """
        try:
            self.store.clear_notified_stages(session_key)
        except PersistenceError as e:
            self.logger.warning(
                "Failed to clear stale milestone markers",
                session_key=session_key,
                error=str(e)
            )

        self.session_key = session_key
        self._notified = set()

        self.logger.debug("Milestone tracking started", session_key=session_key)

    def resume(self, session_key: str) -> frozenset[int]:
        """Reload the persisted marker set for a resumed session."""
        self.session_key = session_key
        self._notified = set(self.store.load_notified_stages(session_key))

        self.logger.info(
            "Milestone markers reloaded",
            session_key=session_key,
            notified=sorted(self._notified)
        )

        return self.notified

    def mark(self, hour_offset: int) -> bool:
        """
        Record a milestone as notified, persisting before updating memory.

        Args:
            hour_offset: Milestone hour offset

        Returns:
            True if newly recorded, False if it was already in the set

        Raises:
            PersistenceError: if the write fails; the set is left unchanged
        """
        if self.session_key is None:
            raise RuntimeError("No session is being tracked")

        if hour_offset in self._notified:
            return False

        updated = self._notified | {hour_offset}
        self.store.save_notified_stages(self.session_key, updated)
        self._notified = updated

        return True

    def discard(self) -> None:
        """
        Drop the marker set of the tracked session.

        A failed delete is logged; the markers of a closed session are never
        read again.
        """
        session_key = self.session_key
        self.session_key = None
        self._notified = set()

        if session_key is None:
            return

        try:
            self.store.clear_notified_stages(session_key)
        except PersistenceError as e:
            self.logger.error(
                "Failed to clear milestone markers",
                session_key=session_key,
                error=str(e)
            )
