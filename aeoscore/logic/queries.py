"""Probe query generation."""

from __future__ import annotations

CATEGORY_TEMPLATES = (
    "What are the best {category} brands?",
    "Recommend some good {category} online stores",
    "Where can I buy quality {category}?",
)

BRAND_TEMPLATES = (
    "What do you know about {brand}?",
    "Is {brand} a good brand? What do they sell?",
    "Tell me about {brand} products",
)


def build_queries(brand_name: str, category_hint: str | None = None) -> list[str]:
    """Category discovery questions first (when a hint exists), then brand questions."""
    queries: list[str] = []
    category = (category_hint or "").strip()
    if category:
        queries.extend(template.format(category=category) for template in CATEGORY_TEMPLATES)
    queries.extend(template.format(brand=brand_name) for template in BRAND_TEMPLATES)
    return queries
