"""Plan limit lookup."""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

PLANS_PATH = pathlib.Path(__file__).with_name("plans.yml")
DEFAULT_PLAN = "FREE"


@dataclass(slots=True, frozen=True)
class PlanLimits:
    plan: str
    display_name: str
    products_audited: int | None
    visibility_checks_per_month: int
    platforms_tracked: int
    history_days: int


class PlanCatalog:
    """Tier name -> quotas. Unknown tiers get the free allowance."""

    def __init__(self, limits: list[PlanLimits]) -> None:
        self._limits = {limit.plan: limit for limit in limits}
        if DEFAULT_PLAN not in self._limits:
            raise ValueError(f"Plan catalog must define {DEFAULT_PLAN}")

    def limits_for(self, plan: str | None) -> PlanLimits:
        key = (plan or DEFAULT_PLAN).upper()
        limits = self._limits.get(key)
        if limits is None:
            logger.warning("Unknown plan %r; using %s limits", plan, DEFAULT_PLAN)
            return self._limits[DEFAULT_PLAN]
        return limits

    def __contains__(self, plan: str) -> bool:
        return plan.upper() in self._limits


def load_plans(path: pathlib.Path = PLANS_PATH) -> PlanCatalog:
    data = yaml.safe_load(path.read_text())
    return PlanCatalog([PlanLimits(**item) for item in data])
