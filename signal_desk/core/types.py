"""
Core data types for Signal Desk.

This module defines the records that flow through the system:
- Source: A configured syndication feed plus its health fields
- FeedEntry: One entry parsed from a fetched feed document
- NewItem: Candidate item row built from a feed entry, before insertion
- Item: One stored article with its tag bundle
- TagBundle: Dimension -> values mapping attached to an item
- NormalizedTag: Denormalized (item, dimension, value) triple
- IngestionLogEntry: Audit record of one ingestion attempt
- IngestResult: Per-source result returned by the ingestion coordinator
- StoryCluster: Transient grouping of items reporting the same story
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .result import Result


TAG_DIMENSIONS = ("category", "platform", "theme", "company")


def _unique(values) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


@dataclass
class TagBundle:
    """Structured labels attached to one item.

    Each dimension holds a duplicate-free list of values; the order of values
    carries no meaning.
    """

    category: list[str] = field(default_factory=list)
    platform: list[str] = field(default_factory=list)
    theme: list[str] = field(default_factory=list)
    company: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for dimension in TAG_DIMENSIONS:
            setattr(self, dimension, _unique(getattr(self, dimension)))

    def as_dict(self) -> dict[str, list[str]]:
        return {dimension: list(getattr(self, dimension)) for dimension in TAG_DIMENSIONS}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TagBundle:
        data = data or {}
        values = {}
        for dimension in TAG_DIMENSIONS:
            raw = data.get(dimension) or []
            values[dimension] = [str(v) for v in raw] if isinstance(raw, list) else []
        return cls(**values)

    def populated_dimensions(self) -> int:
        """Number of dimensions with at least one value."""
        return sum(1 for dimension in TAG_DIMENSIONS if getattr(self, dimension))


@dataclass
class AITags:
    """Companies and themes returned by the AI enrichment pass."""

    company: list[str] = field(default_factory=list)
    theme: list[str] = field(default_factory=list)


@dataclass
class Source:
    """A configured syndication feed.

    Attributes:
        id: Store identity
        name: Display name (e.g., "GamesIndustry.biz")
        url: Display URL of the publication
        feed_url: URL of the feed document
        source_type: Category label ("news", "newsletter", "analysis", "podcast", ...)
        active: Only active sources are ingested by ingest_all
        last_fetched_at: Time of the last attempt whose fetch succeeded
        last_error: Error text of the last failed attempt, None after a success
        consecutive_errors: Failed attempts since the last success
        last_success_at: Time of the last fully successful attempt
        created_at: Creation time
    """

    id: str
    name: str
    url: str
    feed_url: str
    source_type: str = "news"
    active: bool = True
    last_fetched_at: datetime | None = None
    last_error: str | None = None
    consecutive_errors: int = 0
    last_success_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class SourceRef:
    """Source fields joined onto an item when items are read back."""

    name: str
    url: str
    source_type: str


@dataclass
class SourceHealthUpdate:
    """Health fields written after an ingestion attempt."""

    error: str | None
    consecutive_errors: int
    last_success_at: datetime | None = None


@dataclass
class FeedEntry:
    """One entry of a parsed feed document. Every field is optional."""

    guid: str | None = None
    link: str | None = None
    title: str | None = None
    content_snippet: str | None = None
    content: str | None = None
    creator: str | None = None
    author: str | None = None
    iso_date: str | None = None


@dataclass
class NewItem:
    """Candidate item row, keyed on (source_id, external_id)."""

    source_id: str
    external_id: str
    title: str
    url: str
    content: str | None = None
    author: str | None = None
    published_at: datetime | None = None


@dataclass
class Item:
    """One ingested article.

    Attributes:
        id: Store identity
        source_id: Owning source
        external_id: Dedup key, unique per source
        title: Headline
        url: Canonical article URL
        content: Optional body text
        author: Optional author name
        published_at: Optional publication time
        ingested_at: Time the row was inserted
        tags: Tag bundle, the authoritative copy of the item's tags
        source: Joined source fields, populated on reads
    """

    id: str
    source_id: str | None
    external_id: str | None
    title: str
    url: str
    content: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    ingested_at: datetime | None = None
    tags: TagBundle = field(default_factory=TagBundle)
    source: SourceRef | None = None


@dataclass(frozen=True)
class NormalizedTag:
    """Denormalized tag row, unique on (item_id, dimension, value)."""

    item_id: str
    dimension: str
    value: str
    manual: bool = False


@dataclass
class IngestionLogEntry:
    """Append-only audit record for one ingestion attempt of one source."""

    source_id: str
    source_name: str
    started_at: datetime
    finished_at: datetime
    fetched: int
    inserted: int
    errors: list[str] = field(default_factory=list)
    success: bool = True
    duration_ms: int = 0


@dataclass
class IngestResult:
    """Outcome of ingesting one source.

    Attributes:
        source: Source display name
        source_id: Source identity, None for synthetic results
        fetched: Number of entries in the feed document
        inserted: Number of genuinely new items
        errors: "Fetch: ..." / "DB: ..." error strings
        log_write: Outcome of the best-effort ingestion log append
        health_update: Outcome of the best-effort source health update
    """

    source: str
    source_id: str | None = None
    fetched: int = 0
    inserted: int = 0
    errors: list[str] = field(default_factory=list)
    log_write: Result | None = None
    health_update: Result | None = None

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class StoryCluster:
    """Items believed to report the same story.

    Attributes:
        id: Identity of the lead item
        lead: Representative item, the first member in input order
        related: Remaining members in input order
        source_names: Distinct source display names across all members
        is_multi_source: True when more than one distinct source contributed
    """

    id: str
    lead: Item
    related: list[Item] = field(default_factory=list)
    source_names: list[str] = field(default_factory=list)
    is_multi_source: bool = False

    @property
    def source_count(self) -> int:
        return len(self.source_names)

    @property
    def members(self) -> list[Item]:
        return [self.lead, *self.related]


@dataclass
class ScoreFactor:
    """One itemized contribution to an importance score."""

    label: str
    value: float
    detail: str | None = None


@dataclass
class ScoreBreakdown:
    """Explainable factor list for a cluster score."""

    factors: list[ScoreFactor] = field(default_factory=list)
    total: float = 0.0
