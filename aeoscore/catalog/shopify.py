"""Shopify Admin GraphQL catalog source."""

from __future__ import annotations

import logging
import os
import re
from typing import Any

import httpx

from aeoscore.catalog.models import CatalogImage, CatalogItem, Tenant
from aeoscore.errors import CatalogFetchError
from aeoscore.utils.rate_limit import RateLimiter
from aeoscore.utils.retry import retry_async

logger = logging.getLogger(__name__)

SHOPIFY_API_VERSION = os.environ.get("SHOPIFY_API_VERSION", "2025-01")
SHOPIFY_RATE = float(os.environ.get("SHOPIFY_RATE", 2.0))
MAX_PAGE_SIZE = 250

PRODUCT_GID_RE = re.compile(r"/(\d+)$")

PRODUCTS_QUERY = """
query GetProducts($first: Int!) {
  products(first: $first) {
    nodes {
      id
      title
      handle
      description
      images(first: 10) { nodes { url altText } }
      metafields(first: 20) { nodes { namespace key } }
      seo { title description }
      vendor
      productType
      tags
    }
  }
}
"""

PRODUCTS_COUNT_QUERY = """
query GetProductsCount {
  productsCount { count }
}
"""


class ShopifyCatalogClient:
    def __init__(
        self,
        *,
        session: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        api_version: str = SHOPIFY_API_VERSION,
    ) -> None:
        self._session = session or httpx.AsyncClient(timeout=30.0)
        self._rate_limiter = rate_limiter or RateLimiter(rate=SHOPIFY_RATE)
        self.api_version = api_version

    async def close(self) -> None:
        await self._session.aclose()

    async def count_items(self, tenant: Tenant) -> int:
        data = await self._graphql(tenant, PRODUCTS_COUNT_QUERY)
        try:
            return int(data["productsCount"]["count"])
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogFetchError(f"Malformed products count for {tenant.domain}") from exc

    async def fetch_items(self, tenant: Tenant, limit: int) -> list[CatalogItem]:
        if limit <= 0:
            return []
        first = min(limit, MAX_PAGE_SIZE)
        logger.info("Fetching up to %s products for %s", first, tenant.domain)
        data = await self._graphql(tenant, PRODUCTS_QUERY, {"first": first})
        nodes = ((data.get("products") or {}).get("nodes")) or []
        return [_to_catalog_item(node) for node in nodes]

    async def _graphql(
        self, tenant: Tenant, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        if not tenant.access_token:
            raise CatalogFetchError(f"No access token stored for {tenant.domain}")
        url = f"https://{tenant.domain}/admin/api/{self.api_version}/graphql.json"
        headers = {
            "X-Shopify-Access-Token": tenant.access_token,
            "Content-Type": "application/json",
        }
        await self._rate_limiter.wait(tenant.domain)
        try:
            response = await retry_async(self._session.post)(
                url, json={"query": query, "variables": variables or {}}, headers=headers
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise CatalogFetchError(f"Shopify request failed for {tenant.domain}: {exc}") from exc
        except ValueError as exc:
            raise CatalogFetchError(f"Invalid JSON from {tenant.domain}") from exc
        if payload.get("errors"):
            raise CatalogFetchError(f"Shopify GraphQL errors for {tenant.domain}: {payload['errors']}")
        return payload.get("data") or {}


def extract_item_id(gid: str) -> str:
    """``gid://shopify/Product/123`` -> ``"123"``."""
    match = PRODUCT_GID_RE.search(gid or "")
    if not match:
        raise CatalogFetchError(f"Invalid product GID: {gid}")
    return match.group(1)


def _to_catalog_item(node: dict[str, Any]) -> CatalogItem:
    seo = node.get("seo") or {}
    images = [
        CatalogImage(url=image.get("url", ""), alt_text=image.get("altText"))
        for image in (node.get("images") or {}).get("nodes", [])
    ]
    return CatalogItem(
        item_id=extract_item_id(node.get("id", "")),
        title=node.get("title") or "",
        handle=node.get("handle") or "",
        description=node.get("description") or "",
        images=images,
        product_type=node.get("productType") or None,
        vendor=node.get("vendor") or None,
        tags=list(node.get("tags") or []),
        seo_title=seo.get("title"),
        seo_description=seo.get("description"),
        metafields=list((node.get("metafields") or {}).get("nodes", [])),
    )
