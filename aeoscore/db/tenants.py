"""Tenant lookups shared by audit and visibility runs."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from aeoscore.catalog.models import Tenant
from aeoscore.db.schema import audit_logs, product_audits, tenants
from aeoscore.errors import TenantNotFound


def load_tenant(conn: Connection, domain: str) -> Tenant:
    row = (
        conn.execute(
            select(tenants.c.id, tenants.c.domain, tenants.c.name, tenants.c.plan, tenants.c.access_token).where(
                tenants.c.domain == domain
            )
        )
        .mappings()
        .first()
    )
    if row is None:
        raise TenantNotFound(domain)
    return Tenant(
        id=row["id"],
        domain=row["domain"],
        plan=row["plan"],
        name=row["name"],
        access_token=row["access_token"],
    )


def list_tenant_domains(conn: Connection) -> list[str]:
    return list(conn.execute(select(tenants.c.domain).order_by(tenants.c.id)).scalars())


def category_hint(conn: Connection, tenant_id: int) -> str | None:
    """Most common product type among the tenant's audited items."""
    count = func.count().label("n")
    row = conn.execute(
        select(product_audits.c.product_type, count)
        .where(
            product_audits.c.tenant_id == tenant_id,
            product_audits.c.product_type.is_not(None),
            product_audits.c.product_type != "",
        )
        .group_by(product_audits.c.product_type)
        .order_by(count.desc(), product_audits.c.product_type)
        .limit(1)
    ).first()
    return row[0] if row else None


def record_audit_log(conn: Connection, tenant_id: int, action: str, details: dict[str, Any], at) -> None:
    conn.execute(
        audit_logs.insert().values(tenant_id=tenant_id, action=action, details=details, created_at=at)
    )
