"""
Physiological fasting timeline.

Generalized, approximate stage markers. Individual responses vary; the hours
follow commonly reported ranges.
"""

from typing import Any, Iterable, Optional

import structlog

from ..errors import MalformedDataError
from ..state.models import MilestoneDefinition, StageCategory, StageStatus
from .plan_normalizer import PlanNormalizer

logger = structlog.get_logger(__name__)

DEFAULT_UPCOMING_WINDOW_HOURS = 2

BUILTIN_TIMELINE: tuple[MilestoneDefinition, ...] = (
    MilestoneDefinition(
        0, "Fed State",
        "Blood glucose from recent meal is primary fuel; insulin elevated.",
        StageCategory.METABOLIC,
    ),
    MilestoneDefinition(
        4, "Post-Absorptive",
        "Insulin begins to fall; liver glycogen starts gradual utilization.",
        StageCategory.METABOLIC,
    ),
    MilestoneDefinition(
        8, "Early Fat Mobilization",
        "Lipolysis increases; body shifts toward fatty acid usage for energy.",
        StageCategory.METABOLIC,
    ),
    MilestoneDefinition(
        12, "Lower Insulin / Mild Ketones",
        "Insulin lower; mild ketone production may begin in some individuals.",
        StageCategory.METABOLIC,
    ),
    MilestoneDefinition(
        16, "Ketogenic Shift",
        "Increased fatty acid oxidation; ketone levels rising; autophagy may initiate.",
        StageCategory.CELLULAR,
    ),
    MilestoneDefinition(
        20, "Growth Hormone Elevation",
        "Growth hormone secretion elevated supporting fat utilization & tissue repair.",
        StageCategory.HORMONAL,
    ),
    MilestoneDefinition(
        24, "Deep Glycogen Depletion",
        "Liver glycogen low; predominant fat-derived fuels; autophagy activity increases.",
        StageCategory.CELLULAR,
    ),
    MilestoneDefinition(
        30, "Enhanced Autophagy",
        "Cellular cleanup intensifies; dysfunctional components tagged & recycled.",
        StageCategory.CELLULAR,
    ),
    MilestoneDefinition(
        36, "Deeper Ketosis",
        "Ketone levels higher; brain efficiently using ketones & conserving glucose.",
        StageCategory.METABOLIC,
    ),
    MilestoneDefinition(
        48, "Sustained Cellular Recycling",
        "Prolonged autophagy & metabolic adaptation; inflammatory markers may reduce.",
        StageCategory.CELLULAR,
    ),
)


class TimelineProvider:
    """Ordered milestone definitions with stage status derivation."""

    def __init__(
        self,
        entries: Optional[Iterable[MilestoneDefinition]] = None,
        upcoming_window_hours: float = DEFAULT_UPCOMING_WINDOW_HOURS
    ):
        """
        Args:
            entries: Milestones in any order; built-ins when None
            upcoming_window_hours: How far ahead a stage counts as upcoming

        Raises:
            MalformedDataError: if two entries share an hour offset
        """
        source = BUILTIN_TIMELINE if entries is None else entries
        ordered = sorted(source, key=lambda m: m.hour_offset)

        seen: set[int] = set()
        for milestone in ordered:
            if milestone.hour_offset in seen:
                raise MalformedDataError(
                    f"Duplicate timeline hour offset: {milestone.hour_offset}",
                    raw_data=str(milestone.hour_offset),
                    expected_format="unique hour_offset per entry"
                )
            seen.add(milestone.hour_offset)

        self._entries: tuple[MilestoneDefinition, ...] = tuple(ordered)
        self.upcoming_window_hours = upcoming_window_hours

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]] = None) -> 'TimelineProvider':
        """
        Build a timeline from the configured `timeline` list, or the built-ins.

        Raises:
            MalformedDataError: if a configured entry is invalid or duplicated
        """
        config = config or {}
        window = (config.get('engine') or {}).get('upcoming_window_hours', DEFAULT_UPCOMING_WINDOW_HOURS)
        raw_entries = config.get('timeline')

        if not raw_entries:
            return cls(upcoming_window_hours=window)

        normalizer = PlanNormalizer(config)
        entries = []
        for index, raw in enumerate(raw_entries):
            result = normalizer.normalize_milestone(raw)
            if not result.success:
                raise MalformedDataError(
                    f"Invalid timeline entry at index {index}: {result.error_msg}",
                    raw_data=str(raw),
                    expected_format="{hour_offset, label, detail, category}"
                )
            entries.append(result.value)

        logger.info("Loaded configured timeline", entries=len(entries))
        return cls(entries, upcoming_window_hours=window)

    @property
    def entries(self) -> tuple[MilestoneDefinition, ...]:
        return self._entries

    def stages_up_to(self, target_hours: Optional[int]) -> list[MilestoneDefinition]:
        """
        Stages up to a fasting duration, or all stages when there is no target.
        """
        if target_hours is None:
            return list(self._entries)
        return [m for m in self._entries if m.hour_offset <= target_hours]

    def status_for(self, entry: MilestoneDefinition, elapsed_hours: float) -> StageStatus:
        """
        Determines progress state for a stage given elapsed hours.
        """
        if elapsed_hours >= entry.hour_offset:
            return StageStatus.REACHED
        if entry.hour_offset - elapsed_hours <= self.upcoming_window_hours:
            return StageStatus.UPCOMING
        return StageStatus.LOCKED
