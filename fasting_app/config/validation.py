"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from ..logging.config import LOG_LEVELS
from ..utils.time import is_valid_timezone


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_notification_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate notification preferences."""
        errors = []

        for flag in (
            "enable_start_reminders",
            "enable_end_reminders",
            "enable_stage_notifications",
            "enable_health_tips",
            "enable_motivational_quotes",
            "enable_nearly_done_countdown",
            "quiet_hours_enabled",
        ):
            if flag in params and not isinstance(params[flag], bool):
                errors.append(ValidationError(
                    field=f"notifications.{flag}",
                    message="Must be a boolean",
                    value=params[flag]
                ))

        # Clock hours
        for field in ("quiet_hours_start", "quiet_hours_end"):
            if field in params:
                value = params[field]
                if not _is_int(value) or not 0 <= value <= 23:
                    errors.append(ValidationError(
                        field=f"notifications.{field}",
                        message="Must be an integer hour between 0 and 23",
                        value=value
                    ))

        # Offsets from session start or target end
        for field in ("custom_reminder_hours", "nearly_done_minutes", "health_tip_hours"):
            if field in params:
                value = params[field]
                if not isinstance(value, (list, tuple)) or not all(
                    _is_int(v) and v >= 0 for v in value
                ):
                    errors.append(ValidationError(
                        field=f"notifications.{field}",
                        message="Must be a list of non-negative integers",
                        value=value
                    ))

        if "min_lead_seconds" in params:
            value = params["min_lead_seconds"]
            if not _is_int(value) or value < 0:
                errors.append(ValidationError(
                    field="notifications.min_lead_seconds",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_level_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate level thresholds."""
        errors = []

        if "thresholds" in params:
            value = params["thresholds"]
            valid = (
                isinstance(value, (list, tuple))
                and len(value) > 0
                and all(_is_int(v) and v > 0 for v in value)
                and all(a < b for a, b in zip(value, value[1:]))
            )
            if not valid:
                errors.append(ValidationError(
                    field="levels.thresholds",
                    message="Must be a non-empty list of positive, strictly ascending integers",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_engine_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate engine parameters."""
        errors = []

        if "tick_interval_seconds" in params:
            value = params["tick_interval_seconds"]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="engine.tick_interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "upcoming_window_hours" in params:
            value = params["upcoming_window_hours"]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="engine.upcoming_window_hours",
                    message="Must be a non-negative number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_time_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate time parameters."""
        errors = []

        if "timezone" in params:
            value = params["timezone"]
            if not isinstance(value, str) or not is_valid_timezone(value):
                errors.append(ValidationError(
                    field="time.timezone",
                    message="Must be a known IANA timezone name",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate log output parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        for flag in ("format_json", "include_caller"):
            if flag in params and not isinstance(params[flag], bool):
                errors.append(ValidationError(
                    field=f"logging.{flag}",
                    message="Must be a boolean",
                    value=params[flag]
                ))

        return errors

    @staticmethod
    def validate_timeline(entries: Any) -> list[ValidationError]:
        """Validate configured timeline entries."""
        errors = []

        if not isinstance(entries, list):
            return [ValidationError(field="timeline", message="Must be a list", value=entries)]

        seen = set()
        for index, entry in enumerate(entries):
            offset = entry.get("hour_offset") if isinstance(entry, dict) else None
            if not _is_int(offset) or offset < 0:
                errors.append(ValidationError(
                    field=f"timeline[{index}].hour_offset",
                    message="Must be a non-negative integer",
                    value=offset
                ))
                continue
            if offset in seen:
                errors.append(ValidationError(
                    field=f"timeline[{index}].hour_offset",
                    message="Duplicate hour offset",
                    value=offset
                ))
            seen.add(offset)

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "engine" in config:
            errors.extend(ConfigValidator.validate_engine_params(config["engine"] or {}))

        if "notifications" in config:
            errors.extend(ConfigValidator.validate_notification_params(config["notifications"] or {}))

        if "levels" in config:
            errors.extend(ConfigValidator.validate_level_params(config["levels"] or {}))

        if "time" in config:
            errors.extend(ConfigValidator.validate_time_params(config["time"] or {}))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"] or {}))

        if config.get("timeline") is not None:
            errors.extend(ConfigValidator.validate_timeline(config["timeline"]))

        return errors
