"""Answer-engine visibility runs.

A run resolves the tenant, checks the monthly quota, and probes the
configured answer engines one call at a time with a fixed pause between
calls. Failed probes are logged and skipped; whatever succeeded is
persisted and summarised.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections import defaultdict
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field

import pendulum
from sqlalchemy.engine import Engine

from aeoscore.catalog.models import Tenant
from aeoscore.db.schema import visibility_checks
from aeoscore.db.tenants import category_hint, load_tenant, record_audit_log
from aeoscore.engines import AnswerEngine, Platform
from aeoscore.errors import NoEnginesConfigured, QuotaExceeded
from aeoscore.logic.analyzer import ResponseAnalysis, analyze_response
from aeoscore.logic.queries import build_queries
from aeoscore.logic.quota import QuotaState, quota_state
from aeoscore.plans import PlanCatalog, load_plans
from aeoscore.utils.dates import now_in_tz

logger = logging.getLogger(__name__)

MAX_QUERIES_PER_RUN = 3
VISIBILITY_PACING_SECONDS = float(os.environ.get("VISIBILITY_PACING_SECONDS", 1.0))

VISIBILITY_ACTION = "visibility_check"


@dataclass(slots=True)
class VisibilityCheckResult:
    platform: str
    query: str
    analysis: ResponseAnalysis
    raw_response: str

    @property
    def is_mentioned(self) -> bool:
        return self.analysis.is_mentioned


@dataclass(slots=True)
class VisibilityCheckSummary:
    domain: str
    brand_name: str
    queries_run: int
    platforms: list[str]
    total_checks: int
    mentioned_count: int
    not_mentioned_count: int
    competitors: list[str] = field(default_factory=list)
    results: list[VisibilityCheckResult] = field(default_factory=list)


@dataclass(slots=True)
class _RunContext:
    tenant: Tenant
    quota: QuotaState
    category: str | None


def summarize_checks(
    domain: str, brand_name: str, queries_run: int, platforms: list[str], results: Sequence[VisibilityCheckResult]
) -> VisibilityCheckSummary:
    mentioned = sum(1 for result in results if result.is_mentioned)
    competitors: dict[str, None] = {}
    for result in results:
        for name in result.analysis.competitors:
            competitors.setdefault(name, None)
    return VisibilityCheckSummary(
        domain=domain,
        brand_name=brand_name,
        queries_run=queries_run,
        platforms=platforms,
        total_checks=len(results),
        mentioned_count=mentioned,
        not_mentioned_count=len(results) - mentioned,
        competitors=list(competitors),
        results=list(results),
    )


class VisibilityRunner:
    def __init__(
        self,
        engine: Engine,
        engines: Mapping[str, AnswerEngine],
        plans: PlanCatalog | None = None,
        *,
        pacing_seconds: float = VISIBILITY_PACING_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], pendulum.DateTime] = now_in_tz,
    ) -> None:
        self.engine = engine
        # Keys must be known platforms; they are persisted as the check's platform.
        self.engines = {Platform(key).value: answer_engine for key, answer_engine in engines.items()}
        self.plans = plans or load_plans()
        self.pacing_seconds = pacing_seconds
        self._sleep = sleep
        self.clock = clock
        # Serialises runs per tenant within this process so two requests
        # cannot both pass the quota check before either persists. Keyed by
        # tenant id, so only existing tenants ever get an entry.
        self._tenant_locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def available_platforms(self) -> list[str]:
        return list(self.engines)

    async def run(
        self,
        domain: str,
        queries: Sequence[str] | None = None,
        platforms: Sequence[str] | None = None,
    ) -> VisibilityCheckSummary:
        loop = asyncio.get_running_loop()
        tenant = await loop.run_in_executor(None, self._load_tenant, domain)
        async with self._tenant_locks[tenant.id]:
            return await self._run(tenant, queries, platforms)

    async def _run(
        self, tenant: Tenant, queries: Sequence[str] | None, platforms: Sequence[str] | None
    ) -> VisibilityCheckSummary:
        domain = tenant.domain
        logger.info("Starting visibility check for %s", domain)
        loop = asyncio.get_running_loop()
        context = await loop.run_in_executor(None, self._load_context, tenant)
        quota = context.quota
        if quota.exhausted:
            logger.info("Visibility quota exhausted for %s (%s/%s)", domain, quota.used, quota.limit)
            raise QuotaExceeded(quota.limit, quota.used)

        selected = self._select_platforms(platforms)
        brand_name = tenant.brand_name
        candidates = list(queries) if queries is not None else build_queries(brand_name, context.category)
        per_platform = quota.remaining // len(selected)
        to_run = candidates[: min(per_platform, MAX_QUERIES_PER_RUN)]
        if not to_run:
            raise QuotaExceeded(quota.limit, quota.used)

        results: list[VisibilityCheckResult] = []
        first_call = True
        for platform in selected:
            answer_engine = self.engines[platform]
            for query in to_run:
                if not first_call:
                    await self._sleep(self.pacing_seconds)
                first_call = False
                try:
                    raw = await answer_engine.ask(query)
                except Exception as exc:
                    logger.warning("Visibility probe failed on %s for %r: %s", platform, query, exc)
                    continue
                result = VisibilityCheckResult(
                    platform=platform,
                    query=query,
                    analysis=analyze_response(raw, brand_name, tenant.domain),
                    raw_response=raw,
                )
                await loop.run_in_executor(None, self._persist_result, tenant, result, self.clock())
                results.append(result)

        summary = summarize_checks(domain, brand_name, len(to_run), selected, results)
        await loop.run_in_executor(None, self._persist_log, tenant, summary, self.clock())
        logger.info(
            "Visibility check completed for %s: %s checks, %s mentioned",
            domain,
            summary.total_checks,
            summary.mentioned_count,
        )
        return summary

    def _select_platforms(self, requested: Sequence[str] | None) -> list[str]:
        available = self.available_platforms()
        if requested:
            selected = [platform for platform in requested if platform in self.engines]
        else:
            selected = available[:1]
        if not selected:
            raise NoEnginesConfigured("No answer engines configured for the requested platforms")
        return selected

    def _load_tenant(self, domain: str) -> Tenant:
        with self.engine.connect() as conn:
            return load_tenant(conn, domain)

    def _load_context(self, tenant: Tenant) -> _RunContext:
        with self.engine.connect() as conn:
            return _RunContext(
                tenant=tenant,
                quota=quota_state(conn, self.plans, tenant, self.clock()),
                category=category_hint(conn, tenant.id),
            )

    def _persist_result(self, tenant: Tenant, result: VisibilityCheckResult, checked_at: pendulum.DateTime) -> None:
        analysis = result.analysis
        with self.engine.begin() as conn:
            conn.execute(
                visibility_checks.insert().values(
                    tenant_id=tenant.id,
                    platform=result.platform,
                    query=result.query,
                    is_mentioned=analysis.is_mentioned,
                    mention_context=analysis.mention_context,
                    position=analysis.position,
                    competitors_found=[{"name": name} for name in analysis.competitors],
                    response_quality=analysis.response_quality,
                    raw_response=result.raw_response,
                    checked_at=checked_at,
                )
            )

    def _persist_log(self, tenant: Tenant, summary: VisibilityCheckSummary, at: pendulum.DateTime) -> None:
        with self.engine.begin() as conn:
            record_audit_log(
                conn,
                tenant.id,
                VISIBILITY_ACTION,
                {
                    "queries_run": summary.queries_run,
                    "platforms_checked": summary.platforms,
                    "mentioned": summary.mentioned_count,
                },
                at,
            )
