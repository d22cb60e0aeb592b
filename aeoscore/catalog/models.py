"""Catalog and tenant data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MYSHOPIFY_SUFFIX = ".myshopify.com"


@dataclass(slots=True)
class Tenant:
    id: int
    domain: str
    plan: str
    name: str | None = None
    access_token: str | None = None

    @property
    def domain_base(self) -> str:
        return domain_base(self.domain)

    @property
    def brand_name(self) -> str:
        if self.name and self.name.strip():
            return self.name.strip()
        return self.domain_base.replace("-", " ")


@dataclass(slots=True)
class CatalogImage:
    url: str
    alt_text: str | None = None


@dataclass(slots=True)
class CatalogItem:
    item_id: str
    title: str
    handle: str = ""
    description: str = ""
    images: list[CatalogImage] = field(default_factory=list)
    product_type: str | None = None
    vendor: str | None = None
    tags: list[str] = field(default_factory=list)
    seo_title: str | None = None
    seo_description: str | None = None
    metafields: list[dict[str, Any]] = field(default_factory=list)


def domain_base(domain: str) -> str:
    lowered = domain.lower()
    if lowered.endswith(MYSHOPIFY_SUFFIX):
        return lowered[: -len(MYSHOPIFY_SUFFIX)]
    return lowered
