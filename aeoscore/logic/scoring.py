"""AI-readiness scoring for catalog items.

Every item starts at 100 points. Missing or thin metadata subtracts a fixed
penalty and records an issue; rich metadata earns small bonuses. The result
is clamped to 0-100 and depends only on the item's fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from aeoscore.catalog.models import CatalogItem

CRITICAL = "critical"
WARNING = "warning"
INFO = "info"

MAX_SCORE = 100
MIN_SCORE = 0

SHORT_DESCRIPTION_CHARS = 50
BRIEF_DESCRIPTION_CHARS = 150
RICH_DESCRIPTION_CHARS = 300
ALT_TEXT_PENALTY = 5
ALT_TEXT_MAX_IMAGES = 3

# Aggregate score bands used when reporting a tenant's catalog.
BAND_CRITICAL_BELOW = 40
BAND_WARNING_BELOW = 70
BAND_INFO_BELOW = 90


@dataclass(slots=True, frozen=True)
class AuditIssue:
    severity: str
    code: str
    message: str
    field: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {"severity": self.severity, "code": self.code, "message": self.message, "field": self.field}


@dataclass(slots=True)
class AuditResult:
    item_id: str
    title: str
    handle: str
    score: int
    issues: list[AuditIssue] = field(default_factory=list)
    product_type: str | None = None
    has_images: bool = False
    has_description: bool = False
    has_metafields: bool = False
    description_length: int = 0

    @property
    def issue_codes(self) -> list[str]:
        return [issue.code for issue in self.issues]


def score_item(item: CatalogItem) -> AuditResult:
    issues: list[AuditIssue] = []
    score = MAX_SCORE

    description = item.description or ""
    description_length = len(description)
    has_description = description_length > 0
    has_images = bool(item.images)
    has_metafields = bool(item.metafields)

    if not has_description:
        issues.append(
            AuditIssue(
                CRITICAL,
                "NO_DESCRIPTION",
                "Product has no description. AI cannot recommend products without descriptions.",
                "description",
            )
        )
        score -= 40
    elif description_length < SHORT_DESCRIPTION_CHARS:
        issues.append(
            AuditIssue(
                CRITICAL,
                "SHORT_DESCRIPTION",
                f"Description is too short ({description_length} chars). Aim for at least 150 characters.",
                "description",
            )
        )
        score -= 25
    elif description_length < BRIEF_DESCRIPTION_CHARS:
        issues.append(
            AuditIssue(
                WARNING,
                "BRIEF_DESCRIPTION",
                f"Description could be longer ({description_length} chars). 200+ characters recommended.",
                "description",
            )
        )
        score -= 10

    if not has_images:
        issues.append(
            AuditIssue(
                CRITICAL,
                "NO_IMAGES",
                "Product has no images. Visual content helps AI understand your product.",
                "images",
            )
        )
        score -= 30
    else:
        missing_alt = sum(1 for image in item.images if not (image.alt_text or "").strip())
        if missing_alt:
            issues.append(
                AuditIssue(
                    WARNING,
                    "MISSING_ALT_TEXT",
                    f"{missing_alt} image(s) missing alt text. Alt text helps AI understand images.",
                    "images",
                )
            )
            score -= ALT_TEXT_PENALTY * min(missing_alt, ALT_TEXT_MAX_IMAGES)

    if not item.seo_title:
        issues.append(
            AuditIssue(
                WARNING,
                "NO_SEO_TITLE",
                "No SEO title set. Custom SEO titles help AI understand your product better.",
                "seo.title",
            )
        )
        score -= 5

    if not item.seo_description:
        issues.append(
            AuditIssue(
                WARNING,
                "NO_SEO_DESCRIPTION",
                "No SEO description set. Meta descriptions provide context to AI.",
                "seo.description",
            )
        )
        score -= 5

    if not item.product_type:
        issues.append(
            AuditIssue(
                WARNING,
                "NO_PRODUCT_TYPE",
                "No product type set. Product categorization helps AI recommendations.",
                "productType",
            )
        )
        score -= 5

    if not item.tags:
        issues.append(
            AuditIssue(WARNING, "NO_TAGS", "No tags set. Tags help AI understand product attributes.", "tags")
        )
        score -= 5

    if not has_metafields:
        issues.append(
            AuditIssue(
                INFO, "NO_METAFIELDS", "Consider adding custom metafields for richer product data.", "metafields"
            )
        )
        score -= 2

    if not item.vendor:
        issues.append(
            AuditIssue(
                INFO, "NO_VENDOR", "No vendor set. Brand information can improve AI recommendations.", "vendor"
            )
        )
        score -= 2

    if description_length >= RICH_DESCRIPTION_CHARS:
        score += 5
    if len(item.images) >= 3:
        score += 3
    if len(item.tags) >= 5:
        score += 2

    return AuditResult(
        item_id=item.item_id,
        title=item.title,
        handle=item.handle,
        score=max(MIN_SCORE, min(MAX_SCORE, score)),
        issues=issues,
        product_type=item.product_type,
        has_images=has_images,
        has_description=has_description,
        has_metafields=has_metafields,
        description_length=description_length,
    )


def issue_band(score: int) -> str | None:
    """Report-time band for an item score; None for 90 and above."""
    if score < BAND_CRITICAL_BELOW:
        return CRITICAL
    if score < BAND_WARNING_BELOW:
        return WARNING
    if score < BAND_INFO_BELOW:
        return INFO
    return None
