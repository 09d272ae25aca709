"""
Rule-based importance scoring for items and story clusters.

Produces a 0-1 score from:
  - Content category (earnings, M&A, fundraising score highest)
  - Source authority (analysis > newsletter > news > podcast)
  - Company density (more companies = bigger industry event)
  - Financial signals in the title ($, %, revenue, billion, ...)
  - Tag richness (items tagged across several dimensions)

Cluster-level bonuses:
  - Multi-source corroboration
  - Related article count

Scores are built from itemized factors, so score_cluster and
get_cluster_score_breakdown always agree.
"""

from __future__ import annotations

import re

from ..core.types import Item, ScoreBreakdown, ScoreFactor, StoryCluster


CATEGORY_WEIGHTS: dict[str, float] = {
    "earnings": 0.30,
    "m-and-a": 0.30,
    "fundraising": 0.25,
    "analysis": 0.08,
    "opinion": 0.04,
    "podcast": 0.04,
}

SOURCE_TYPE_WEIGHTS: dict[str, float] = {
    "analysis": 0.15,
    "newsletter": 0.12,
    "news": 0.10,
    "podcast": 0.08,
}

# Items without any source information are scored as news; a source type
# missing from the table gets this weight instead.
DEFAULT_SOURCE_TYPE = "news"
UNLISTED_SOURCE_WEIGHT = 0.08

FINANCIAL_PATTERNS = [
    re.compile(r"\$\d", re.IGNORECASE),
    re.compile(r"\d+%"),
    re.compile(r"\b(billion|million|revenue|profit|loss|quarterly|ipo)\b", re.IGNORECASE),
    re.compile(r"\b(acquir|merger|layoff|shut.?down|clos(e[ds]?|ing))\b", re.IGNORECASE),
    re.compile(r"\b(series [a-f]|seed round|funding)\b", re.IGNORECASE),
]
FINANCIAL_HIT_WEIGHT = 0.05
FINANCIAL_CAP = 0.15

TAG_DIMENSION_WEIGHT = 0.02
TAG_RICHNESS_CAP = 0.08

MULTI_SOURCE_BONUS = 0.15
EXTRA_SOURCE_BONUS = 0.05
RELATED_ITEM_BONUS = 0.02
RELATED_CAP = 0.10

TIER_CRITICAL = "critical"
TIER_HIGH = "high"
TIER_MEDIUM = "medium"
TIER_LOW = "low"


def item_factors(item: Item) -> list[ScoreFactor]:
    """Itemized factor list for one item, zero-valued factors included."""
    tags = item.tags

    best_category = None
    category_weight = 0.0
    for category in tags.category:
        weight = CATEGORY_WEIGHTS.get(category, 0.0)
        if weight > category_weight:
            best_category, category_weight = category, weight

    source_type = item.source.source_type if item.source and item.source.source_type else DEFAULT_SOURCE_TYPE
    source_weight = SOURCE_TYPE_WEIGHTS.get(source_type, UNLISTED_SOURCE_WEIGHT)

    companies = len(tags.company)
    if companies >= 3:
        company_weight = 0.15
    elif companies == 2:
        company_weight = 0.10
    elif companies == 1:
        company_weight = 0.05
    else:
        company_weight = 0.0

    hits = sum(1 for pattern in FINANCIAL_PATTERNS if pattern.search(item.title or ""))
    financial_weight = min(hits * FINANCIAL_HIT_WEIGHT, FINANCIAL_CAP)

    dimensions = tags.populated_dimensions()
    richness_weight = min(dimensions * TAG_DIMENSION_WEIGHT, TAG_RICHNESS_CAP)

    return [
        ScoreFactor("Category", category_weight, best_category),
        ScoreFactor("Source authority", source_weight, source_type),
        ScoreFactor("Companies", company_weight, f"{companies} tagged"),
        ScoreFactor("Financial signals", financial_weight, f"{hits} in title"),
        ScoreFactor("Tag richness", richness_weight, f"{dimensions} dimensions"),
    ]


def score_item(item: Item) -> float:
    """Score a single item in [0, 1]."""
    return min(_sum(item_factors(item)), 1.0)


def get_cluster_score_breakdown(cluster: StoryCluster) -> ScoreBreakdown:
    """Explain a cluster score as a list of non-zero factors.

    The best-scoring member contributes its own item factors; the lead wins
    ties. Cluster bonuses follow. The total equals score_cluster(cluster).
    """
    best = cluster.lead
    best_score = score_item(best)
    for item in cluster.related:
        item_score = score_item(item)
        if item_score > best_score:
            best, best_score = item, item_score

    factors = item_factors(best)

    if cluster.is_multi_source:
        extra_sources = max(0, cluster.source_count - 2)
        factors.append(
            ScoreFactor(
                "Multi-source",
                MULTI_SOURCE_BONUS + extra_sources * EXTRA_SOURCE_BONUS,
                f"{cluster.source_count} sources",
            )
        )

    related_bonus = min(len(cluster.related) * RELATED_ITEM_BONUS, RELATED_CAP)
    factors.append(ScoreFactor("Related coverage", related_bonus, f"{len(cluster.related)} related"))

    total = min(_sum(factors), 1.0)
    return ScoreBreakdown(factors=[f for f in factors if f.value > 0], total=total)


def score_cluster(cluster: StoryCluster) -> float:
    """Score a cluster in [0, 1]: best member score plus corroboration bonuses."""
    return get_cluster_score_breakdown(cluster).total


def importance_tier(score: float) -> str:
    """Map a score onto critical / high / medium / low."""
    if score >= 0.65:
        return TIER_CRITICAL
    if score >= 0.45:
        return TIER_HIGH
    if score >= 0.25:
        return TIER_MEDIUM
    return TIER_LOW


def _sum(factors: list[ScoreFactor]) -> float:
    total = 0.0
    for factor in factors:
        total += factor.value
    return total
