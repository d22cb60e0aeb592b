"""Monthly visibility quota, derived from persisted check rows."""

from __future__ import annotations

from dataclasses import dataclass

import pendulum
from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from aeoscore.catalog.models import Tenant
from aeoscore.db.schema import visibility_checks
from aeoscore.plans import PlanCatalog
from aeoscore.utils.dates import now_in_tz, start_of_month


@dataclass(slots=True, frozen=True)
class QuotaState:
    limit: int
    used: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit


def checks_this_month(conn: Connection, tenant_id: int, now: pendulum.DateTime | None = None) -> int:
    month_start = start_of_month(now or now_in_tz())
    return conn.execute(
        select(func.count())
        .select_from(visibility_checks)
        .where(visibility_checks.c.tenant_id == tenant_id, visibility_checks.c.checked_at >= month_start)
    ).scalar_one()


def quota_state(
    conn: Connection, plans: PlanCatalog, tenant: Tenant, now: pendulum.DateTime | None = None
) -> QuotaState:
    limits = plans.limits_for(tenant.plan)
    return QuotaState(limit=limits.visibility_checks_per_month, used=checks_this_month(conn, tenant.id, now))
