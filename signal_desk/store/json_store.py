"""
File-backed store.

Keeps a MemoryStore in memory and persists it to a data directory:
- sources.json: Source snapshot
- items.json: Item snapshot including tag bundles
- item_tags.json: Normalized tag rows
- ingestion_logs.jsonl: Append-only ingestion audit log, one JSON object per line

Snapshots are rewritten through a temporary file and an atomic rename. Item
inserts and source updates write through; tag updates are buffered until
flush(). Filesystem failures surface as StoreError.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
import json
import os
from pathlib import Path
from typing import Any

from ..config import SourceConfig
from ..core.errors import StoreError
from ..core.types import (
    IngestionLogEntry,
    Item,
    NewItem,
    NormalizedTag,
    Source,
    SourceHealthUpdate,
    TagBundle,
)
from .memory import MemoryStore


SOURCES_FILE = "sources.json"
ITEMS_FILE = "items.json"
TAGS_FILE = "item_tags.json"
LOGS_FILE = "ingestion_logs.jsonl"


class JsonFileStore(MemoryStore):
    """MemoryStore persisted as JSON files under data_dir."""

    def __init__(self, data_dir: Path):
        super().__init__()
        self.data_dir = Path(data_dir)
        self._dirty: set[str] = set()
        self._load()

    async def upsert_items(self, rows: list[NewItem]) -> list[Item]:
        inserted = await super().upsert_items(rows)
        if not inserted:
            return inserted
        try:
            self._write_items()
        except StoreError:
            # Unpersisted rows must not count as duplicates on the next attempt.
            for item in inserted:
                self._items.pop(item.id, None)
                self._item_keys.pop((item.source_id, item.external_id), None)
            raise
        return inserted

    async def update_item_tags(self, item_id: str, tags: TagBundle) -> None:
        await super().update_item_tags(item_id, tags)
        self._dirty.add(ITEMS_FILE)

    async def upsert_normalized_tags(self, rows: list[NormalizedTag]) -> None:
        await super().upsert_normalized_tags(rows)
        self._dirty.add(TAGS_FILE)

    async def flush(self) -> None:
        """Write the snapshots touched by tag updates since the last flush."""
        if ITEMS_FILE in self._dirty:
            self._write_items()
        if TAGS_FILE in self._dirty:
            self._write_json(TAGS_FILE, [asdict(row) for row in self._tags.values()])
            self._dirty.discard(TAGS_FILE)

    async def upsert_sources(self, configs: list[SourceConfig]) -> list[Source]:
        sources = await super().upsert_sources(configs)
        self._write_sources()
        return sources

    async def update_source_fetch_time(self, source_id: str, fetched_at: datetime) -> None:
        await super().update_source_fetch_time(source_id, fetched_at)
        self._write_sources()

    async def update_source_health(self, source_id: str, update: SourceHealthUpdate) -> None:
        await super().update_source_health(source_id, update)
        self._write_sources()

    async def append_ingestion_log(self, entry: IngestionLogEntry) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with (self.data_dir / LOGS_FILE).open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(_log_to_dict(entry), ensure_ascii=True))
                handle.write("\n")
        except OSError as exc:
            raise StoreError(f"Failed to append ingestion log: {exc}") from exc
        await super().append_ingestion_log(entry)

    # Persistence

    def _load(self) -> None:
        try:
            for raw in self._read_json(SOURCES_FILE):
                source = _source_from_dict(raw)
                self._sources[source.id] = source
            for raw in self._read_json(ITEMS_FILE):
                item = _item_from_dict(raw)
                self._items[item.id] = item
                self._item_keys[(item.source_id or "", item.external_id or "")] = item.id
            for raw in self._read_json(TAGS_FILE):
                row = NormalizedTag(**raw)
                self._tags[(row.item_id, row.dimension, row.value)] = row
            logs_path = self.data_dir / LOGS_FILE
            if logs_path.exists():
                with logs_path.open(encoding="utf-8") as handle:
                    for line in handle:
                        if line.strip():
                            self._logs.append(_log_from_dict(json.loads(line)))
        except (OSError, ValueError, TypeError, KeyError) as exc:
            raise StoreError(f"Failed to load store from {self.data_dir}: {exc}") from exc

    def _read_json(self, name: str) -> list[dict[str, Any]]:
        path = self.data_dir / name
        if not path.exists():
            return []
        with path.open(encoding="utf-8") as handle:
            return json.load(handle) or []

    def _write_sources(self) -> None:
        self._write_json(SOURCES_FILE, [_source_to_dict(s) for s in self._sources.values()])

    def _write_items(self) -> None:
        self._write_json(ITEMS_FILE, [_item_to_dict(item) for item in self._items.values()])
        self._dirty.discard(ITEMS_FILE)

    def _write_json(self, name: str, payload: list[dict[str, Any]]) -> None:
        path = self.data_dir / name
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StoreError(f"Failed to write {path}: {exc}") from exc


def _dt_out(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_in(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _source_to_dict(source: Source) -> dict[str, Any]:
    data = asdict(source)
    for key in ("last_fetched_at", "last_success_at", "created_at"):
        data[key] = _dt_out(getattr(source, key))
    return data


def _source_from_dict(data: dict[str, Any]) -> Source:
    data = dict(data)
    for key in ("last_fetched_at", "last_success_at", "created_at"):
        data[key] = _dt_in(data.get(key))
    return Source(**data)


def _item_to_dict(item: Item) -> dict[str, Any]:
    return {
        "id": item.id,
        "source_id": item.source_id,
        "external_id": item.external_id,
        "title": item.title,
        "url": item.url,
        "content": item.content,
        "author": item.author,
        "published_at": _dt_out(item.published_at),
        "ingested_at": _dt_out(item.ingested_at),
        "tags": item.tags.as_dict(),
    }


def _item_from_dict(data: dict[str, Any]) -> Item:
    return Item(
        id=data["id"],
        source_id=data.get("source_id"),
        external_id=data.get("external_id"),
        title=data["title"],
        url=data["url"],
        content=data.get("content"),
        author=data.get("author"),
        published_at=_dt_in(data.get("published_at")),
        ingested_at=_dt_in(data.get("ingested_at")),
        tags=TagBundle.from_dict(data.get("tags")),
    )


def _log_to_dict(entry: IngestionLogEntry) -> dict[str, Any]:
    data = asdict(entry)
    data["started_at"] = _dt_out(entry.started_at)
    data["finished_at"] = _dt_out(entry.finished_at)
    return data


def _log_from_dict(data: dict[str, Any]) -> IngestionLogEntry:
    data = dict(data)
    data["started_at"] = _dt_in(data["started_at"])
    data["finished_at"] = _dt_in(data["finished_at"])
    return IngestionLogEntry(**data)
