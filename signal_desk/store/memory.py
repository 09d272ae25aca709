"""In-process store used by tests and as the base of the file-backed store."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import uuid

from ..config import SourceConfig
from ..core.errors import StoreError
from ..core.types import (
    IngestionLogEntry,
    Item,
    NewItem,
    NormalizedTag,
    Source,
    SourceHealthUpdate,
    SourceRef,
    TagBundle,
)
from .base import Store


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore(Store):
    """Dictionary-backed Store.

    Every operation completes without awaiting, so concurrent ingestion tasks
    on one event loop never observe a half-applied write. Reads return copies;
    callers cannot mutate stored rows.
    """

    def __init__(self) -> None:
        self._sources: dict[str, Source] = {}
        self._items: dict[str, Item] = {}
        self._item_keys: dict[tuple[str, str], str] = {}
        self._tags: dict[tuple[str, str, str], NormalizedTag] = {}
        self._logs: list[IngestionLogEntry] = []

    # Items

    async def upsert_items(self, rows: list[NewItem]) -> list[Item]:
        inserted: list[Item] = []
        now = _utcnow()
        for row in rows:
            key = (row.source_id, row.external_id)
            if key in self._item_keys:
                continue
            item = Item(
                id=_new_id(),
                source_id=row.source_id,
                external_id=row.external_id,
                title=row.title,
                url=row.url,
                content=row.content,
                author=row.author,
                published_at=row.published_at,
                ingested_at=now,
            )
            self._items[item.id] = item
            self._item_keys[key] = item.id
            inserted.append(replace(item))
        return inserted

    async def update_item_tags(self, item_id: str, tags: TagBundle) -> None:
        item = self._items.get(item_id)
        if item is None:
            raise StoreError(f"Unknown item: {item_id}")
        item.tags = TagBundle.from_dict(tags.as_dict())

    async def upsert_normalized_tags(self, rows: list[NormalizedTag]) -> None:
        for row in rows:
            key = (row.item_id, row.dimension, row.value)
            self._tags.setdefault(key, row)

    async def list_items(self, limit: int | None = None) -> list[Item]:
        items = sorted(self._items.values(), key=lambda item: item.id)
        items.sort(key=_published_sort_key)
        out = [self._joined(item) for item in items]
        if limit is not None:
            out = out[:limit]
        return out

    async def list_normalized_tags(self, item_id: str | None = None) -> list[NormalizedTag]:
        return [
            row for row in self._tags.values() if item_id is None or row.item_id == item_id
        ]

    def _joined(self, item: Item) -> Item:
        source = self._sources.get(item.source_id or "")
        ref = None
        if source is not None:
            ref = SourceRef(name=source.name, url=source.url, source_type=source.source_type)
        return replace(item, tags=TagBundle.from_dict(item.tags.as_dict()), source=ref)

    # Sources

    async def list_active_sources(self) -> list[Source]:
        return [replace(s) for s in self._sources.values() if s.active]

    async def list_sources(self) -> list[Source]:
        return [replace(s) for s in self._sources.values()]

    async def get_source(self, source_id: str) -> Source | None:
        source = self._sources.get(source_id)
        return replace(source) if source is not None else None

    async def upsert_sources(self, configs: list[SourceConfig]) -> list[Source]:
        by_feed = {s.feed_url: s for s in self._sources.values()}
        out: list[Source] = []
        for cfg in configs:
            existing = by_feed.get(cfg.feed_url)
            if existing is not None:
                existing.name = cfg.name
                existing.url = cfg.url
                existing.source_type = cfg.source_type
                existing.active = cfg.active
                out.append(replace(existing))
                continue
            source = Source(
                id=_new_id(),
                name=cfg.name,
                url=cfg.url,
                feed_url=cfg.feed_url,
                source_type=cfg.source_type,
                active=cfg.active,
                created_at=_utcnow(),
            )
            self._sources[source.id] = source
            by_feed[source.feed_url] = source
            out.append(replace(source))
        return out

    def add_source(self, source: Source) -> Source:
        """Register a fully built source as-is."""
        self._sources[source.id] = replace(source)
        return source

    async def update_source_fetch_time(self, source_id: str, fetched_at: datetime) -> None:
        self._require_source(source_id).last_fetched_at = fetched_at

    async def update_source_health(self, source_id: str, update: SourceHealthUpdate) -> None:
        source = self._require_source(source_id)
        source.last_error = update.error
        source.consecutive_errors = update.consecutive_errors
        if update.last_success_at is not None:
            source.last_success_at = update.last_success_at

    def _require_source(self, source_id: str) -> Source:
        source = self._sources.get(source_id)
        if source is None:
            raise StoreError(f"Unknown source: {source_id}")
        return source

    # Logs

    async def append_ingestion_log(self, entry: IngestionLogEntry) -> None:
        self._logs.append(replace(entry, errors=list(entry.errors)))

    async def list_logs(
        self,
        since: datetime | None = None,
        source_id: str | None = None,
    ) -> list[IngestionLogEntry]:
        logs = [
            replace(entry)
            for entry in self._logs
            if (since is None or entry.started_at >= since)
            and (source_id is None or entry.source_id == source_id)
        ]
        logs.sort(key=lambda entry: entry.started_at, reverse=True)
        return logs


def _published_sort_key(item: Item) -> tuple[int, float]:
    if item.published_at is None:
        return (1, 0.0)
    return (0, -item.published_at.timestamp())
