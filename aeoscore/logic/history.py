"""Read models for dashboards: visibility history and audit score trend."""

from __future__ import annotations

from typing import Any

import pendulum
from sqlalchemy import select
from sqlalchemy.engine import Engine

from aeoscore.db.schema import audit_logs, visibility_checks
from aeoscore.db.tenants import load_tenant
from aeoscore.logic.audit import AUDIT_ACTION
from aeoscore.plans import PlanCatalog
from aeoscore.utils.dates import days_ago

HISTORY_LIMIT = 50


def visibility_history(engine: Engine, domain: str, *, limit: int = HISTORY_LIMIT) -> list[dict[str, Any]]:
    """Most recent probe results for a tenant, newest first."""
    with engine.connect() as conn:
        tenant = load_tenant(conn, domain)
        rows = conn.execute(
            select(
                visibility_checks.c.id,
                visibility_checks.c.platform,
                visibility_checks.c.query,
                visibility_checks.c.is_mentioned,
                visibility_checks.c.mention_context,
                visibility_checks.c.position,
                visibility_checks.c.competitors_found,
                visibility_checks.c.response_quality,
                visibility_checks.c.raw_response,
                visibility_checks.c.checked_at,
            )
            .where(visibility_checks.c.tenant_id == tenant.id)
            .order_by(visibility_checks.c.checked_at.desc(), visibility_checks.c.id.desc())
            .limit(limit)
        ).mappings()
        return [dict(row) for row in rows]


def audit_trend(
    engine: Engine, domain: str, plans: PlanCatalog, *, now: pendulum.DateTime | None = None
) -> list[dict[str, Any]]:
    """Audit run summaries inside the plan's history window, oldest first."""
    with engine.connect() as conn:
        tenant = load_tenant(conn, domain)
        since = days_ago(plans.limits_for(tenant.plan).history_days, now)
        rows = conn.execute(
            select(audit_logs.c.created_at, audit_logs.c.details)
            .where(
                audit_logs.c.tenant_id == tenant.id,
                audit_logs.c.action == AUDIT_ACTION,
                audit_logs.c.created_at >= since,
            )
            .order_by(audit_logs.c.created_at, audit_logs.c.id)
        ).mappings()
        return [{"created_at": row["created_at"], **row["details"]} for row in rows]
