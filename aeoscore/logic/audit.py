"""Catalog audit runs: fetch, score, aggregate, persist."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np
import pendulum
from sqlalchemy import DateTime, bindparam
from sqlalchemy.engine import Engine
from sqlalchemy.sql import text

from aeoscore.catalog import CatalogSource
from aeoscore.catalog.models import CatalogItem, Tenant
from aeoscore.db.session import json_placeholder
from aeoscore.db.tenants import load_tenant, record_audit_log
from aeoscore.errors import CatalogFetchError
from aeoscore.logic.scoring import (
    BAND_CRITICAL_BELOW,
    BAND_INFO_BELOW,
    BAND_WARNING_BELOW,
    AuditResult,
    score_item,
)
from aeoscore.plans import PlanCatalog, load_plans
from aeoscore.utils.dates import now_in_tz

logger = logging.getLogger(__name__)

AUDIT_PAGE_CAP = int(os.environ.get("AUDIT_PAGE_CAP", 50))
AUDIT_WORKERS = int(os.environ.get("AUDIT_WORKERS", 4))

AUDIT_ACTION = "audit_completed"


@dataclass(slots=True)
class TenantAuditSummary:
    total_items: int
    audited_items: int
    average_score: int
    critical: int
    warning: int
    info: int
    results: list[AuditResult] = field(default_factory=list)

    def log_details(self) -> dict[str, object]:
        return {
            "total_products": self.total_items,
            "audited_products": self.audited_items,
            "average_score": self.average_score,
            "issues": {"critical": self.critical, "warning": self.warning, "info": self.info},
        }


def summarize(results: Sequence[AuditResult], *, total_items: int) -> TenantAuditSummary:
    if not results:
        return TenantAuditSummary(total_items=total_items, audited_items=0, average_score=0, critical=0, warning=0, info=0)
    scores = np.array([result.score for result in results], dtype=float)
    # Half rounds up, matching how averages are shown on the dashboard.
    average = int(math.floor(scores.mean() + 0.5))
    return TenantAuditSummary(
        total_items=total_items,
        audited_items=len(results),
        average_score=average,
        critical=int((scores < BAND_CRITICAL_BELOW).sum()),
        warning=int(((scores >= BAND_CRITICAL_BELOW) & (scores < BAND_WARNING_BELOW)).sum()),
        info=int(((scores >= BAND_WARNING_BELOW) & (scores < BAND_INFO_BELOW)).sum()),
        results=list(results),
    )


class AuditRunner:
    def __init__(
        self,
        engine: Engine,
        catalog: CatalogSource,
        plans: PlanCatalog | None = None,
        *,
        page_cap: int = AUDIT_PAGE_CAP,
        workers: int = AUDIT_WORKERS,
        clock: Callable[[], pendulum.DateTime] = now_in_tz,
    ) -> None:
        self.engine = engine
        self.catalog = catalog
        self.plans = plans or load_plans()
        self.page_cap = page_cap
        self.workers = workers
        self.clock = clock

    async def run(self, domain: str) -> TenantAuditSummary:
        logger.info("Starting AI readiness audit for %s", domain)
        loop = asyncio.get_running_loop()
        tenant = await loop.run_in_executor(None, self._load_tenant, domain)
        limits = self.plans.limits_for(tenant.plan)
        fetch_limit = self.page_cap
        if limits.products_audited is not None:
            fetch_limit = min(limits.products_audited, self.page_cap)

        try:
            total_items = await self.catalog.count_items(tenant)
            items = await self.catalog.fetch_items(tenant, fetch_limit)
        except CatalogFetchError as exc:
            logger.error("Catalog fetch failed for %s: %s", domain, exc)
            raise

        results = await self._score_all(items[:fetch_limit])
        summary = summarize(results, total_items=total_items)
        await loop.run_in_executor(None, self._persist, tenant, summary, self.clock())
        logger.info(
            "Audit completed for %s: %s items, average score %s",
            domain,
            summary.audited_items,
            summary.average_score,
        )
        return summary

    async def _score_all(self, items: Sequence[CatalogItem]) -> list[AuditResult]:
        if not items:
            return []
        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=max(1, self.workers)) as pool:
            scored = await asyncio.gather(*(loop.run_in_executor(pool, score_item, item) for item in items))
        return list(scored)

    def _load_tenant(self, domain: str) -> Tenant:
        with self.engine.connect() as conn:
            return load_tenant(conn, domain)

    def _persist(self, tenant: Tenant, summary: TenantAuditSummary, audited_at: pendulum.DateTime) -> None:
        with self.engine.begin() as conn:
            if summary.results:
                upsert = text(
                    f"""
                    INSERT INTO product_audits (
                      tenant_id, item_id, title, handle, product_type, ai_score, issues,
                      has_images, has_description, has_metafields, description_length, last_audit_at
                    )
                    VALUES (
                      :tenant_id, :item_id, :title, :handle, :product_type, :ai_score, {json_placeholder(conn, "issues")},
                      :has_images, :has_description, :has_metafields, :description_length, :audited_at
                    )
                    ON CONFLICT (tenant_id, item_id) DO UPDATE SET
                      title = EXCLUDED.title,
                      handle = EXCLUDED.handle,
                      product_type = EXCLUDED.product_type,
                      ai_score = EXCLUDED.ai_score,
                      issues = EXCLUDED.issues,
                      has_images = EXCLUDED.has_images,
                      has_description = EXCLUDED.has_description,
                      has_metafields = EXCLUDED.has_metafields,
                      description_length = EXCLUDED.description_length,
                      last_audit_at = EXCLUDED.last_audit_at
                    """
                ).bindparams(bindparam("audited_at", type_=DateTime(timezone=True)))
                conn.execute(
                    upsert,
                    [
                        {
                            "tenant_id": tenant.id,
                            "item_id": result.item_id,
                            "title": result.title,
                            "handle": result.handle,
                            "product_type": result.product_type,
                            "ai_score": result.score,
                            "issues": json.dumps([issue.as_dict() for issue in result.issues]),
                            "has_images": result.has_images,
                            "has_description": result.has_description,
                            "has_metafields": result.has_metafields,
                            "description_length": result.description_length,
                            "audited_at": audited_at,
                        }
                        for result in summary.results
                    ],
                )
            conn.execute(
                text(
                    """
                    UPDATE tenants
                    SET product_count = :product_count, ai_score = :ai_score, last_audit_at = :audited_at
                    WHERE id = :id
                    """
                ).bindparams(bindparam("audited_at", type_=DateTime(timezone=True))),
                {
                    "product_count": summary.total_items,
                    "ai_score": summary.average_score,
                    "audited_at": audited_at,
                    "id": tenant.id,
                },
            )
            record_audit_log(conn, tenant.id, AUDIT_ACTION, summary.log_details(), audited_at)
