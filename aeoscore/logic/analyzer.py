"""Brand mention analysis for answer-engine responses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from aeoscore.catalog.models import domain_base

QUALITY_NONE = "none"
QUALITY_PARTIAL = "partial"
QUALITY_GOOD = "good"

CONTEXT_BEFORE = 100
CONTEXT_AFTER = 200

LIST_MARKER_RE = re.compile(r"\d+\.")

POSITIVE_PHRASES = ("recommend", "great option", "excellent", "top choice")

COMMON_COMPETITORS = (
    "amazon",
    "ebay",
    "walmart",
    "target",
    "etsy",
    "alibaba",
    "aliexpress",
    "shopify",
    "wayfair",
    "overstock",
    "zappos",
    "asos",
    "nordstrom",
    "macys",
    "best buy",
    "nike",
    "adidas",
    "zara",
)


@dataclass(slots=True)
class ResponseAnalysis:
    is_mentioned: bool
    mention_context: str | None = None
    position: int | None = None
    competitors: list[str] = field(default_factory=list)
    response_quality: str = QUALITY_NONE


def analyze_response(response: str, brand_name: str, brand_domain: str) -> ResponseAnalysis:
    """Detect whether and how a brand appears in a free-text answer.

    ``brand_name`` must be non-blank; an empty needle would match any text.
    The list position is the number of ``N.`` markers before the first
    mention, so prices or years ahead of the mention inflate it. Matching
    runs on the lowercased text but offsets slice the original, so characters
    whose lowercase form is longer (such as "İ") shift the context window and
    the position count.
    """
    if not brand_name or not brand_name.strip():
        raise ValueError("brand_name must be a non-empty string")

    lowered = response.lower()
    brand = brand_name.strip().lower()
    base = domain_base(brand_domain)
    needles = [needle for needle in (brand, base, brand_domain.lower()) if needle]

    competitors = [name for name in COMMON_COMPETITORS if name in lowered and name not in (brand, base)]

    indices = [index for index in (lowered.find(needle) for needle in needles) if index != -1]
    if not indices:
        return ResponseAnalysis(is_mentioned=False, competitors=competitors)

    index = min(indices)
    start = max(0, index - CONTEXT_BEFORE)
    end = min(len(response), index + CONTEXT_AFTER)
    markers = len(LIST_MARKER_RE.findall(response[:index]))

    if any(phrase in lowered for phrase in POSITIVE_PHRASES):
        quality = QUALITY_GOOD
    else:
        quality = QUALITY_PARTIAL

    return ResponseAnalysis(
        is_mentioned=True,
        mention_context=response[start:end].strip(),
        position=markers or None,
        competitors=competitors,
        response_quality=quality,
    )
