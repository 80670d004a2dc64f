"""
System failure error classifications.

These exceptions represent failures of the engine's collaborators (storage,
notification scheduling) or a corrupted state machine.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class StateTransitionError(SystemFailureError):
    """Invalid state transition that corrupts the state machine."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class PersistenceError(SystemFailureError):
    """Database write or read failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class SchedulerError(SystemFailureError):
    """Notification scheduler failures."""

    def __init__(self, message: str, session_key: Optional[str] = None,
                 identifier: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.session_key = session_key
        self.identifier = identifier
