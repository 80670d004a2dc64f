"""
Lifecycle error classifications for session state machine misuse.

These are raised back to the caller without any state change; the engine
stays in the state it was in before the call.
"""

from typing import Optional, Dict, Any


class LifecycleError(Exception):
    """Base class for rejected lifecycle operations."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class AlreadyActiveError(LifecycleError):
    """A session is already open; a new one cannot be started."""

    def __init__(self, message: str, active_session_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.active_session_id = active_session_id


class NoActiveSessionError(LifecycleError):
    """The operation needs an active session and there is none."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation


class UnknownPlanError(LifecycleError):
    """The requested plan id is not in the plan catalog."""

    def __init__(self, message: str, plan_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.plan_id = plan_id
