"""Default configuration parameters for the fasting session engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineParams:
    """Session engine parameters."""
    tick_interval_seconds: float = 1.0          # Suggested host tick cadence
    upcoming_window_hours: int = 2              # Stage counts as upcoming within this window


@dataclass(frozen=True)
class NotificationParams:
    """Notification planning preferences."""
    enable_start_reminders: bool = True
    enable_end_reminders: bool = True
    enable_stage_notifications: bool = True
    enable_health_tips: bool = True
    enable_motivational_quotes: bool = True      # Motivational title on custom reminders

    # Custom hour reminders
    custom_reminder_hours: tuple[int, ...] = (4, 8, 12)

    # Countdown before target end
    enable_nearly_done_countdown: bool = True
    nearly_done_minutes: tuple[int, ...] = (60, 30, 15, 5)

    # Health tip reminders
    health_tip_hours: tuple[int, ...] = (4, 8, 12, 16)

    # Quiet hours (local clock hours, window may wrap midnight)
    quiet_hours_enabled: bool = False
    quiet_hours_start: int = 22
    quiet_hours_end: int = 7

    min_lead_seconds: int = 60                   # Skip requests firing sooner than this


@dataclass(frozen=True)
class LevelParams:
    """Level progression parameters."""
    thresholds: tuple[int, ...] = (5, 15, 30)   # Completed fasts to reach levels 2, 3, 4


@dataclass(frozen=True)
class TimeParams:
    """Time-based parameters."""
    timezone: str = "UTC"                        # Calendar-day bucketing and quiet hours


@dataclass(frozen=True)
class StorageParams:
    """Session store parameters."""
    db_path: str = "fasting.db"


@dataclass(frozen=True)
class LoggingParams:
    """Log output parameters."""
    level: str = "INFO"
    format_json: bool = False                    # JSON lines instead of the console renderer
    include_caller: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    engine: EngineParams
    notifications: NotificationParams
    levels: LevelParams
    time: TimeParams
    storage: StorageParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        engine=EngineParams(),
        notifications=NotificationParams(),
        levels=LevelParams(),
        time=TimeParams(),
        storage=StorageParams(),
        logging=LoggingParams(),
    )


def notification_params_from_config(config: dict) -> NotificationParams:
    """
    Build NotificationParams from the `notifications` section of a merged config.

    Unknown keys are ignored; list values are converted to tuples.
    """
    section = config.get("notifications") or {}
    known = NotificationParams.__dataclass_fields__.keys()
    values = {}
    for key, value in section.items():
        if key not in known:
            continue
        values[key] = tuple(value) if isinstance(value, list) else value
    return NotificationParams(**values)


def logging_params_from_config(config: dict) -> LoggingParams:
    """Build LoggingParams from the `logging` section of a merged config."""
    section = config.get("logging") or {}
    known = LoggingParams.__dataclass_fields__.keys()
    return LoggingParams(**{k: v for k, v in section.items() if k in known})
