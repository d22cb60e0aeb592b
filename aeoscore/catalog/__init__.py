"""Catalog data contracts and sources."""

from __future__ import annotations

from typing import Protocol

from aeoscore.catalog.models import CatalogItem, Tenant


class CatalogSource(Protocol):
    async def count_items(self, tenant: Tenant) -> int: ...

    async def fetch_items(self, tenant: Tenant, limit: int) -> list[CatalogItem]: ...
