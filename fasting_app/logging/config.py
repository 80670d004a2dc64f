"""
Logging setup for the fasting engine.

Everything logs through structlog on top of stdlib logging. Output goes to
stderr so a host that prints to stdout keeps its own output clean. The engine
binds the active session key into structlog's context variables while it
works on a session, so store, tracker and scheduler events carry it without
passing it around.
"""
import logging
import sys
from typing import IO, Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

from ..config.defaults import LoggingParams, logging_params_from_config

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_processors(format_json: bool = False, include_caller: bool = False) -> list[Processor]:
    """Processor chain shared by console and JSON output."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_caller: bool = False,
    stream: Optional[IO[str]] = None
) -> None:
    """
    Configure structlog for the engine and its host.

    Args:
        level: One of LOG_LEVELS, case-insensitive
        format_json: Emit one JSON object per line instead of console output
        include_caller: Add filename and line number to each event
        stream: Destination, stderr by default
    """
    if level.upper() not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=stream or sys.stderr,
        format="%(message)s",
        force=True
    )

    structlog.configure(
        processors=build_processors(format_json, include_caller),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(
    config: dict[str, Any],
    stream: Optional[IO[str]] = None
) -> LoggingParams:
    """Apply the `logging` section of a merged config and return it."""
    params = logging_params_from_config(config)
    configure_logging(
        level=params.level,
        format_json=params.format_json,
        include_caller=params.include_caller,
        stream=stream
    )
    return params


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_milestone_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for milestone detection decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger bound to the milestones subsystem
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="milestones",
        audit_trail=True
    )


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for session lifecycle transitions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger bound to the state machine subsystem
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="state_machine",
        audit_trail=True
    )


def log_milestone_decision(
    logger: FilteringBoundLogger,
    session_key: str,
    hour_offset: int,
    reached: bool,
    already_notified: bool,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a milestone crossing decision with standardized format.

    Args:
        logger: Structlog logger instance
        session_key: Key of the session being evaluated
        hour_offset: Hour offset of the milestone
        reached: Whether elapsed time has crossed the milestone
        already_notified: Whether the milestone was already in the notified set
        context: Additional context data
    """
    bound_logger = logger.bind(
        session_key=session_key,
        hour_offset=hour_offset,
        milestone_result="NEW" if reached and not already_notified else "SKIP",
        reached=reached,
        already_notified=already_notified,
        event="milestone_decision"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if reached and not already_notified:
        bound_logger.info("Milestone crossed")
    else:
        bound_logger.debug("Milestone skipped")


def log_state_transition(
    logger: FilteringBoundLogger,
    session_key: Optional[str],
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a lifecycle state transition with standardized format.

    Args:
        logger: Structlog logger instance
        session_key: Key of the session transitioning
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        session_key=session_key,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
        event="state_transition"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")
