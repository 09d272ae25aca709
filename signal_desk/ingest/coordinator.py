"""
Ingestion orchestration.

The coordinator runs, per source:
1. Fetch and parse the feed document
2. Map entries to candidate rows and insert them, ignoring known keys
3. Tag each newly inserted item (rules, then AI enrichment)
4. Stamp the source's fetch time
5. Append an ingestion log entry (best effort)
6. Update the source's health fields (best effort)

Sources are ingested concurrently; one source's failure never affects the
others. Store and enrichment handles are injected, nothing is global.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
import time
from typing import Callable, Protocol

from ..core.errors import SourceNotFoundError
from ..core.result import Result
from ..core.types import (
    FeedEntry,
    IngestionLogEntry,
    IngestResult,
    Item,
    NewItem,
    Source,
    SourceHealthUpdate,
)
from ..logging_utils import log_event, log_warning
from ..store.base import Store
from ..tagging.tagger import HybridTagger, normalized_tags


NO_TITLE = "(no title)"


class Fetcher(Protocol):
    async def fetch(self, feed_url: str) -> list[FeedEntry]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionCoordinator:
    """Fetches, stores and tags feed items for configured sources.

    Attributes:
        store: Item, source and log persistence
        fetcher: Feed fetcher (anything with an async fetch(feed_url))
        tagger: Hybrid tagger applied to newly inserted items
    """

    def __init__(
        self,
        store: Store,
        fetcher: Fetcher,
        tagger: HybridTagger,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.fetcher = fetcher
        self.tagger = tagger
        self.logger = logger or logging.getLogger("signal_desk.ingest")
        self._now = clock or _utcnow

    async def ingest_all(self) -> list[IngestResult]:
        """Ingest every active source concurrently.

        Returns one result per active source, in source listing order. A
        source whose task raised is reported with a single synthetic error.

        Raises:
            StoreError: If the active sources cannot be listed
        """
        sources = await self.store.list_active_sources()
        log_event(self.logger, "Ingest started", event="ingest_start", sources=len(sources))
        if not sources:
            return []

        # gather() preserves input order, so results line up with sources.
        outcomes = await asyncio.gather(
            *(self.ingest_one(source) for source in sources),
            return_exceptions=True,
        )

        results: list[IngestResult] = []
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, IngestResult):
                results.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            results.append(
                IngestResult(
                    source=source.name,
                    source_id=source.id,
                    errors=[str(outcome) or "Unknown error"],
                )
            )

        log_event(
            self.logger,
            "Ingest complete",
            event="ingest_complete",
            sources=len(results),
            inserted=sum(r.inserted for r in results),
            failed=sum(1 for r in results if not r.ok),
        )
        return results

    async def ingest_source_id(self, source_id: str) -> IngestResult:
        """Look up one source by id and ingest it, active or not.

        Raises:
            SourceNotFoundError: If no source has this id
        """
        source = await self.store.get_source(source_id)
        if source is None:
            raise SourceNotFoundError(f"Unknown source: {source_id}")
        return await self.ingest_one(source)

    async def ingest_one(self, source: Source) -> IngestResult:
        """Ingest a single source.

        Fetch failures are recorded as "Fetch: ..." errors and store failures
        as "DB: ..." errors; neither propagates. The log append and health
        update are best effort and their outcomes are attached to the result.
        """
        started_at = self._now()
        started = time.monotonic()
        result = IngestResult(source=source.name, source_id=source.id)

        try:
            entries = await self.fetcher.fetch(source.feed_url)
        except Exception as exc:  # noqa: BLE001
            result.errors.append(f"Fetch: {exc}")
            log_warning(
                self.logger,
                "Source fetch failed",
                event="source_fetch_failed",
                source=source.name,
                feed_url=source.feed_url,
                error=str(exc),
            )
        else:
            result.fetched = len(entries)
            if entries:
                await self._store_entries(source, entries, result)
            try:
                await self.store.update_source_fetch_time(source.id, self._now())
            except Exception as exc:  # noqa: BLE001
                result.errors.append(f"DB: {exc}")

        finished_at = self._now()
        duration_ms = int((time.monotonic() - started) * 1000)

        result.log_write = await self._append_log(source, result, started_at, finished_at, duration_ms)
        result.health_update = await self._update_health(source, result, finished_at)

        log_event(
            self.logger,
            "Source ingested",
            event="source_ingested",
            source=source.name,
            fetched=result.fetched,
            inserted=result.inserted,
            errors=len(result.errors),
            duration_ms=duration_ms,
        )
        return result

    async def retag_items(self, items: list[Item] | None = None) -> int:
        """Re-run the hybrid tagger over existing items.

        Args:
            items: Items to re-tag; all stored items when omitted

        Returns:
            Number of items whose tags were written

        Raises:
            StoreError: If the batched tag writes cannot be persisted
        """
        if items is None:
            items = await self.store.list_items()

        tagged = 0
        for item in items:
            source_type = item.source.source_type if item.source is not None else None
            if await self._tag_item(item, source_type):
                tagged += 1
        await self.store.flush()
        log_event(self.logger, "Retag complete", event="retag_complete", items=len(items), tagged=tagged)
        return tagged

    async def _store_entries(self, source: Source, entries: list[FeedEntry], result: IngestResult) -> None:
        rows = [entry_to_row(source, entry) for entry in entries]
        try:
            inserted = await self.store.upsert_items(rows)
        except Exception as exc:  # noqa: BLE001
            result.errors.append(f"DB: {exc}")
            return

        result.inserted = len(inserted)
        for item in inserted:
            await self._tag_item(item, source.source_type)
        try:
            await self.store.flush()
        except Exception as exc:  # noqa: BLE001
            result.errors.append(f"DB: {exc}")

    async def _tag_item(self, item: Item, source_type: str | None) -> bool:
        # One item's failure must leave its siblings untouched.
        try:
            bundle = await self.tagger.tag(item.title, item.content, source_type)
            await self.store.update_item_tags(item.id, bundle)
            rows = normalized_tags(item.id, bundle)
            if rows:
                await self.store.upsert_normalized_tags(rows)
        except Exception as exc:  # noqa: BLE001
            log_warning(
                self.logger,
                "Item tagging failed",
                event="item_tagging_failed",
                item_id=item.id,
                title=item.title,
                error=str(exc),
            )
            return False
        return True

    async def _append_log(
        self,
        source: Source,
        result: IngestResult,
        started_at: datetime,
        finished_at: datetime,
        duration_ms: int,
    ) -> Result:
        entry = IngestionLogEntry(
            source_id=source.id,
            source_name=source.name,
            started_at=started_at,
            finished_at=finished_at,
            fetched=result.fetched,
            inserted=result.inserted,
            errors=list(result.errors),
            success=not result.errors,
            duration_ms=duration_ms,
        )
        try:
            await self.store.append_ingestion_log(entry)
        except Exception as exc:  # noqa: BLE001
            log_warning(
                self.logger,
                "Ingestion log write failed",
                event="log_write_failed",
                source=source.name,
                error=str(exc),
            )
            return Result.failure(str(exc))
        return Result.success(entry)

    async def _update_health(self, source: Source, result: IngestResult, now: datetime) -> Result:
        try:
            if result.errors:
                current = await self.store.get_source(source.id)
                previous = current.consecutive_errors if current is not None else source.consecutive_errors
                update = SourceHealthUpdate(
                    error="; ".join(result.errors),
                    consecutive_errors=previous + 1,
                )
            else:
                update = SourceHealthUpdate(error=None, consecutive_errors=0, last_success_at=now)
            await self.store.update_source_health(source.id, update)
        except Exception as exc:  # noqa: BLE001
            log_warning(
                self.logger,
                "Source health update failed",
                event="health_update_failed",
                source=source.name,
                error=str(exc),
            )
            return Result.failure(str(exc))
        return Result.success(update)


def entry_to_row(source: Source, entry: FeedEntry) -> NewItem:
    """Map one feed entry to a candidate item row.

    The external id is the entry's guid, else its link, else its title, else
    the empty string; entries without any of the three collide with each
    other on that empty key.
    """
    return NewItem(
        source_id=source.id,
        external_id=entry.guid or entry.link or entry.title or "",
        title=entry.title or NO_TITLE,
        url=entry.link or source.url,
        content=entry.content_snippet or entry.content or None,
        author=entry.creator or entry.author or None,
        published_at=parse_iso_date(entry.iso_date),
    )


def parse_iso_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
