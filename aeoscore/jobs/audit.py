"""Nightly catalog audit across all tenants."""

from __future__ import annotations

import asyncio
import logging

from dotenv import load_dotenv
from sqlalchemy.engine import Engine

from aeoscore.catalog.shopify import ShopifyCatalogClient
from aeoscore.db.session import create_engine_from_env
from aeoscore.db.tenants import list_tenant_domains
from aeoscore.errors import CatalogFetchError, TenantNotFound
from aeoscore.logic.audit import AuditRunner, TenantAuditSummary

logger = logging.getLogger(__name__)


def _tenant_domains(engine: Engine) -> list[str]:
    with engine.connect() as conn:
        return list_tenant_domains(conn)


async def run_audits(engine: Engine | None = None, client: ShopifyCatalogClient | None = None) -> dict[str, TenantAuditSummary]:
    load_dotenv()
    engine = engine or create_engine_from_env()
    client = client or ShopifyCatalogClient()
    runner = AuditRunner(engine, client)
    loop = asyncio.get_running_loop()
    domains = await loop.run_in_executor(None, _tenant_domains, engine)

    summaries: dict[str, TenantAuditSummary] = {}
    try:
        for domain in domains:
            try:
                summaries[domain] = await runner.run(domain)
            except (CatalogFetchError, TenantNotFound) as exc:
                logger.warning("Skipping audit for %s: %s", domain, exc)
    finally:
        await client.close()
    logger.info("Audited %s of %s tenants", len(summaries), len(domains))
    return summaries


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_audits())
