"""
Plan and timeline data normalization.

This module converts raw dictionaries (typically from the YAML configuration)
into typed Plan and MilestoneDefinition objects, validating field presence
and types along the way.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from ..state.models import MilestoneDefinition, Plan, StageCategory

logger = structlog.get_logger(__name__)


@dataclass
class NormalizationResult:
    """Result of normalizing one raw entry."""
    # Typed value (None if invalid)
    value: Optional[Any] = None
    # Processing metadata
    success: bool = True
    error_msg: Optional[str] = None

    @classmethod
    def ok(cls, value: Any):
        """Create successful result with the typed value."""
        return cls(value=value, success=True)

    @classmethod
    def error(cls, error_msg: str):
        """Create error result."""
        return cls(success=False, error_msg=error_msg)


def _optional_hours(raw: dict[str, Any], field: str) -> Optional[int]:
    value = raw.get(field)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    hours = int(value)
    if hours < 0:
        raise ValueError(f"{field} must be non-negative")
    return hours


class PlanNormalizer:
    """
    Plan and milestone normalization pipeline.

    Handles field validation and type coercion for catalog and timeline
    entries loaded from configuration.
    """

    def __init__(self, config: Optional[dict[str, Any]] = None):
        """
        Initialize normalizer with configuration.

        Args:
            config: Normalization configuration dict
        """
        self.config = config or {}
        self.logger = logger

    def normalize_plan(self, plan_data: dict[str, Any]) -> NormalizationResult:
        """
        Normalize a fasting plan from raw format to a Plan.

        Args:
            plan_data: Raw plan dictionary

        Returns:
            NormalizationResult with a Plan or error information
        """
        if not isinstance(plan_data, dict):
            return NormalizationResult.error(f"Plan entry must be a mapping, got {type(plan_data).__name__}")

        for field in ('id', 'name'):
            if not plan_data.get(field):
                return NormalizationResult.error(f"Missing required field: {field}")

        try:
            fasting_hours = _optional_hours(plan_data, 'fasting_hours')
            eating_hours = _optional_hours(plan_data, 'eating_hours')
        except (ValueError, TypeError) as e:
            return NormalizationResult.error(f"Invalid hours: {e}")

        if fasting_hours == 0:
            return NormalizationResult.error("fasting_hours must be positive when present")

        tags = plan_data.get('tags') or []
        if not isinstance(tags, (list, tuple)):
            return NormalizationResult.error("tags must be a list")

        return NormalizationResult.ok(Plan(
            id=str(plan_data['id']),
            name=str(plan_data['name']),
            fasting_hours=fasting_hours,
            eating_hours=eating_hours,
            description=str(plan_data.get('description', '')),
            tags=tuple(str(tag) for tag in tags)
        ))

    def normalize_milestone(self, milestone_data: dict[str, Any]) -> NormalizationResult:
        """
        Normalize a timeline entry from raw format to a MilestoneDefinition.

        Args:
            milestone_data: Raw milestone dictionary

        Returns:
            NormalizationResult with a MilestoneDefinition or error information
        """
        if not isinstance(milestone_data, dict):
            return NormalizationResult.error(
                f"Timeline entry must be a mapping, got {type(milestone_data).__name__}"
            )

        if milestone_data.get('hour_offset') is None:
            return NormalizationResult.error("Missing required field: hour_offset")
        if not milestone_data.get('label'):
            return NormalizationResult.error("Missing required field: label")

        try:
            hour_offset = _optional_hours(milestone_data, 'hour_offset')
        except (ValueError, TypeError) as e:
            return NormalizationResult.error(f"Invalid hour_offset: {e}")

        try:
            category = StageCategory(milestone_data.get('category', StageCategory.METABOLIC.value))
        except ValueError:
            return NormalizationResult.error(f"Unknown category: {milestone_data.get('category')}")

        return NormalizationResult.ok(MilestoneDefinition(
            hour_offset=hour_offset,
            label=str(milestone_data['label']),
            detail=str(milestone_data.get('detail', '')),
            category=category
        ))
