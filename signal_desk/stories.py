"""
Story ranking and editorial signals.

Turns a snapshot of stored items into:
- Ranked stories: clusters ordered by importance, with tier and breakdown
- Top stories: corroborated or high-importance stories with a trend label
- Worth reading: best analysis pieces, scored on their own
- Trending companies: most mentioned companies in the snapshot

Everything here is pure computation over the items passed in.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from .cluster import cluster_items, order_for_clustering
from .config import ClusterConfig
from .core.types import Item, ScoreBreakdown, StoryCluster
from .scoring import get_cluster_score_breakdown, importance_tier


TOP_STORY_MIN_SCORE = 0.6
UNKNOWN_AGE_HOURS = 999
ANALYSIS_SOURCE_TYPES = frozenset({"newsletter", "analysis", "blog"})

TREND_NEW = "new"
TREND_UP = "up"
TREND_STABLE = "stable"


@dataclass
class RankedStory:
    cluster: StoryCluster
    score: float
    tier: str
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


@dataclass
class TopStory:
    """A story worth surfacing at the top of the desk.

    Attributes:
        id: Cluster id (the lead item's id)
        title: Lead headline
        source_count: Distinct contributing sources
        article_count: Lead plus related items
        companies: Up to three companies tagged on the lead
        hours_ago: Whole hours since the lead was published
        trend: "new", "up" or "stable"
        score: Cluster importance score
    """

    id: str
    title: str
    source_count: int
    article_count: int
    companies: list[str]
    hours_ago: int
    trend: str
    score: float


@dataclass
class WorthReading:
    id: str
    title: str
    source: str
    source_type: str
    score: float
    url: str


@dataclass
class TrendingCompany:
    name: str
    mentions: int
    max_mentions: int


def rank_stories(items: list[Item], cfg: ClusterConfig | None = None) -> list[RankedStory]:
    """Cluster items and rank the clusters by importance.

    Items may arrive in any order; they are put into deterministic recency
    order before clustering. Equal scores keep their cluster order.
    """
    cfg = cfg or ClusterConfig()
    clusters = cluster_items(
        order_for_clustering(items),
        threshold=cfg.threshold,
        window_hours=cfg.window_hours,
        max_cluster_size=cfg.max_cluster_size,
    )
    ranked = []
    for cluster in clusters:
        breakdown = get_cluster_score_breakdown(cluster)
        ranked.append(
            RankedStory(
                cluster=cluster,
                score=breakdown.total,
                tier=importance_tier(breakdown.total),
                breakdown=breakdown,
            )
        )
    ranked.sort(key=lambda story: story.score, reverse=True)
    return ranked


def top_stories(ranked: list[RankedStory], now: datetime, limit: int = 5) -> list[TopStory]:
    """Pick multi-source or high-scoring stories from a ranked list."""
    significant = [
        story
        for story in ranked
        if story.cluster.is_multi_source or story.score > TOP_STORY_MIN_SCORE
    ]
    significant.sort(key=lambda story: story.score, reverse=True)

    out: list[TopStory] = []
    for story in significant[:limit]:
        lead = story.cluster.lead
        hours = _hours_ago(lead.published_at, now)
        out.append(
            TopStory(
                id=story.cluster.id,
                title=lead.title,
                source_count=story.cluster.source_count,
                article_count=1 + len(story.cluster.related),
                companies=list(lead.tags.company[:3]),
                hours_ago=hours,
                trend=trend_label(hours),
                score=story.score,
            )
        )
    return out


def trend_label(hours_ago: float) -> str:
    if hours_ago < 3:
        return TREND_NEW
    if hours_ago < 12:
        return TREND_UP
    return TREND_STABLE


def worth_reading(items: list[Item], limit: int = 4) -> list[WorthReading]:
    """Best items from newsletter, analysis and blog sources.

    Each item is scored as a cluster of its own, so no corroboration bonus
    applies.
    """
    scored: list[tuple[float, Item]] = []
    for item in items:
        source_type = item.source.source_type if item.source is not None else "news"
        if source_type not in ANALYSIS_SOURCE_TYPES:
            continue
        single = StoryCluster(
            id=item.id,
            lead=item,
            source_names=[item.source.name] if item.source is not None else [],
        )
        scored.append((get_cluster_score_breakdown(single).total, item))

    scored.sort(key=lambda pair: pair[0], reverse=True)

    return [
        WorthReading(
            id=item.id,
            title=item.title,
            source=item.source.name if item.source is not None else "Unknown",
            source_type=item.source.source_type if item.source is not None else "analysis",
            score=score,
            url=item.url,
        )
        for score, item in scored[:limit]
    ]


def trending_companies(items: list[Item], limit: int = 6) -> list[TrendingCompany]:
    """Most mentioned companies, ties in first-seen order."""
    counts: Counter[str] = Counter()
    for item in items:
        counts.update(item.tags.company)

    top = counts.most_common(limit)
    max_mentions = top[0][1] if top else 1
    return [TrendingCompany(name=name, mentions=mentions, max_mentions=max_mentions) for name, mentions in top]


def _hours_ago(published_at: datetime | None, now: datetime) -> int:
    if published_at is None:
        return UNKNOWN_AGE_HOURS
    return int((now - published_at).total_seconds() // 3600)
