"""
Error classification system for the fasting session lifecycle.

This module provides a structured exception hierarchy separating recoverable
lifecycle misuse, data quality problems in configuration or stored rows, and
system failures in persistence or notification scheduling.
"""

from .data_quality import (
    DataQualityError,
    MissingDataError,
    MalformedDataError,
)
from .lifecycle import (
    LifecycleError,
    AlreadyActiveError,
    NoActiveSessionError,
    UnknownPlanError,
)
from .system_failures import (
    SystemFailureError,
    StateTransitionError,
    PersistenceError,
    SchedulerError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MissingDataError",
    "MalformedDataError",
    # Lifecycle Errors
    "LifecycleError",
    "AlreadyActiveError",
    "NoActiveSessionError",
    "UnknownPlanError",
    # System Failures
    "SystemFailureError",
    "StateTransitionError",
    "PersistenceError",
    "SchedulerError",
]
