"""Base class for session stores."""

from abc import ABC, abstractmethod
from typing import Callable, Iterable

from ..state.models import Profile, Session

NOTIFIED_STAGES_PREFIX = "notifiedStages_"


def notified_stages_key(session_key: str) -> str:
    """Storage key of the notified milestone set for a session."""
    return f"{NOTIFIED_STAGES_PREFIX}{session_key}"


class BaseSessionStore(ABC):
    """
    Durable storage for sessions, the profile and milestone markers.

    Every write must be durable before the method returns. Write failures
    raise PersistenceError; implementations must not swallow them.
    """

    @abstractmethod
    def load_all(self) -> list[Session]:
        """Load all sessions ordered by start time."""
        pass

    @abstractmethod
    def append(self, session: Session) -> None:
        """Persist a new session."""
        pass

    @abstractmethod
    def update_by_id(self, session_id: str, mutator: Callable[[Session], Session]) -> Session:
        """
        Replace a stored session with the result of a mutator.

        Args:
            session_id: Id of the stored session
            mutator: Function from the stored session to its replacement

        Returns:
            The stored replacement

        Raises:
            PersistenceError: if the id is unknown or the write fails
        """
        pass

    @abstractmethod
    def load_profile(self) -> Profile:
        """Load the profile, defaults when none was saved yet."""
        pass

    @abstractmethod
    def save_profile(self, profile: Profile) -> None:
        pass

    @abstractmethod
    def load_notified_stages(self, session_key: str) -> set[int]:
        pass

    @abstractmethod
    def save_notified_stages(self, session_key: str, stages: Iterable[int]) -> None:
        pass

    @abstractmethod
    def clear_notified_stages(self, session_key: str) -> None:
        pass

    def open_sessions(self) -> list[Session]:
        """Sessions without an end time, most recent first."""
        sessions = [s for s in self.load_all() if s.is_open]
        return sorted(sessions, key=lambda s: s.start_time, reverse=True)
