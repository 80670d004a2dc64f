"""
Fasting plan catalog.

Built-in protocols range from the 12/12 circadian rhythm to a 36-hour
extended fast, plus patterns that are not time-boxed (5:2, alternate day,
spontaneous meal skipping). Extra plans can be added from configuration.
"""

from typing import Any, Iterable, Optional

import structlog

from ..state.models import Plan
from .plan_normalizer import PlanNormalizer

logger = structlog.get_logger(__name__)

BUILTIN_PLANS: tuple[Plan, ...] = (
    Plan(
        id="12-12",
        name="12/12 Circadian Rhythm",
        fasting_hours=12,
        eating_hours=12,
        description="Fast for 12 hours, eat during a 12-hour window",
        tags=("Beginner-friendly", "Natural", "Easy Start"),
    ),
    Plan(
        id="14-10",
        name="14/10 Intermittent Fasting",
        fasting_hours=14,
        eating_hours=10,
        description="Fast for 14 hours, eat during a 10-hour window",
        tags=("Beginner-friendly", "Sustainable", "Gradual"),
    ),
    Plan(
        id="16-8",
        name="16/8 Intermittent Fasting",
        fasting_hours=16,
        eating_hours=8,
        description="Fast for 16 hours, eat during an 8-hour window",
        tags=("Popular", "Proven", "Effective"),
    ),
    Plan(
        id="18-6",
        name="18/6 Intermittent Fasting",
        fasting_hours=18,
        eating_hours=6,
        description="Fast for 18 hours, eat during a 6-hour window",
        tags=("Intermediate", "Effective", "Autophagy"),
    ),
    Plan(
        id="20-4",
        name="20/4 (Warrior Diet)",
        fasting_hours=20,
        eating_hours=4,
        description="Fast for 20 hours, eat during a 4-hour window",
        tags=("Advanced", "Intense", "Fat Burning"),
    ),
    Plan(
        id="omad",
        name="OMAD (One Meal A Day)",
        fasting_hours=23,
        eating_hours=1,
        description="Eat only one meal per day within 1-2 hours",
        tags=("Advanced", "Extreme", "Maximum Results"),
    ),
    Plan(
        id="eat-stop-eat",
        name="Eat-Stop-Eat (24-Hour Fast)",
        fasting_hours=24,
        description="Fast for 24 hours, once or twice per week",
        tags=("Intermediate", "Weekly", "Flexible"),
    ),
    Plan(
        id="36h-extended",
        name="36-Hour Extended Fast",
        fasting_hours=36,
        description="Fast for 36 hours for deeper metabolic benefits",
        tags=("Advanced", "Extended", "Autophagy"),
    ),
    Plan(
        id="5-2",
        name="5:2 Fasting",
        description="Eat normally 5 days, restrict calories 2 days",
        tags=("Flexible", "Weekly Pattern", "Moderate"),
    ),
    Plan(
        id="alternate-day",
        name="Alternate Day Fasting",
        description="Alternate between fasting and normal eating days",
        tags=("Intermediate", "Structured", "Consistent"),
    ),
    Plan(
        id="spontaneous",
        name="Spontaneous Meal Skipping",
        description="Skip meals intuitively when not hungry",
        tags=("Flexible", "Intuitive", "Beginner-friendly"),
    ),
)


class PlanCatalog:
    """Read-only lookup of fasting plans by id."""

    def __init__(self, plans: Optional[Iterable[Plan]] = None):
        source = BUILTIN_PLANS if plans is None else plans
        self._plans: dict[str, Plan] = {}
        for plan in source:
            self._plans[plan.id] = plan

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]] = None) -> 'PlanCatalog':
        """
        Build a catalog from built-ins plus the configured `plans` list.

        Configured plans override built-ins with the same id. Invalid entries
        are logged and skipped.

        Args:
            config: Merged configuration dict

        Returns:
            PlanCatalog instance
        """
        config = config or {}
        normalizer = PlanNormalizer(config)
        plans = list(BUILTIN_PLANS)

        for index, raw in enumerate(config.get('plans') or []):
            result = normalizer.normalize_plan(raw)
            if not result.success:
                logger.warning(
                    "Skipping invalid plan entry",
                    index=index,
                    error=result.error_msg
                )
                continue
            plans.append(result.value)

        return cls(plans)

    def lookup(self, plan_id: str) -> Optional[Plan]:
        return self._plans.get(plan_id)

    def all_plans(self) -> list[Plan]:
        return list(self._plans.values())

    def __contains__(self, plan_id: str) -> bool:
        return plan_id in self._plans

    def __len__(self) -> int:
        return len(self._plans)
