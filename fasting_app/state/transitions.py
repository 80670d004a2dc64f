"""
Lifecycle transition validation for the session engine.

The engine moves between IDLE, ACTIVE, COMPLETED and ABANDONED. COMPLETED
and ABANDONED are transient: they are logged and then immediately resolved
back to IDLE. Any other move indicates a corrupted state machine.
"""

from typing import Any, Optional

import structlog

from ..errors import StateTransitionError
from ..logging.config import get_state_logger, log_state_transition
from .models import SessionState

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.ACTIVE}),
    SessionState.ACTIVE: frozenset({
        SessionState.COMPLETED,
        SessionState.ABANDONED,
        SessionState.IDLE,
    }),
    SessionState.COMPLETED: frozenset({SessionState.IDLE}),
    SessionState.ABANDONED: frozenset({SessionState.IDLE}),
}


def is_valid_transition(from_state: SessionState, to_state: SessionState) -> bool:
    return to_state in ALLOWED_TRANSITIONS.get(from_state, frozenset())


def validate_transition(
    from_state: SessionState,
    to_state: SessionState,
    session_key: Optional[str] = None
) -> None:
    """
    Raise if the requested lifecycle move is not allowed.

    Raises:
        StateTransitionError: if the move is not in ALLOWED_TRANSITIONS
    """
    if not is_valid_transition(from_state, to_state):
        logger.error(
            "Rejected state transition",
            session_key=session_key,
            from_state=from_state.value,
            to_state=to_state.value
        )
        raise StateTransitionError(
            f"Invalid state transition from {from_state.value} to {to_state.value}",
            current_state=from_state.value,
            attempted_transition=to_state.value,
            context={"session_key": session_key}
        )


def apply_transition(
    from_state: SessionState,
    to_state: SessionState,
    session_key: Optional[str],
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> SessionState:
    """
    Validate and log a lifecycle transition.

    Args:
        from_state: Current engine state
        to_state: Requested engine state
        session_key: Key of the session involved
        trigger: What caused the transition (start, tick, end, cancel, resume)
        context: Extra audit fields

    Returns:
        The new state
    """
    validate_transition(from_state, to_state, session_key)

    log_state_transition(
        state_logger,
        session_key=session_key,
        from_state=from_state.value,
        to_state=to_state.value,
        trigger=trigger,
        context=context
    )

    return to_state


def resolve_terminal(
    from_state: SessionState,
    terminal: SessionState,
    session_key: Optional[str],
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> SessionState:
    """
    Pass through a terminal state (COMPLETED or ABANDONED) back to IDLE.

    Returns:
        SessionState.IDLE
    """
    state = apply_transition(from_state, terminal, session_key, trigger, context)
    return apply_transition(state, SessionState.IDLE, session_key, trigger)
