"""
Abstract store interfaces.

The ingestion coordinator only talks to persistence through these
interfaces. Implementations must enforce the (source_id, external_id) and
(item_id, dimension, value) uniqueness keys themselves; the coordinator
holds no in-process locks. Failures are raised as StoreError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..config import SourceConfig
from ..core.types import (
    IngestionLogEntry,
    Item,
    NewItem,
    NormalizedTag,
    Source,
    SourceHealthUpdate,
    TagBundle,
)


class ItemStore(ABC):
    """Items and their normalized tag rows."""

    @abstractmethod
    async def upsert_items(self, rows: list[NewItem]) -> list[Item]:
        """Insert rows, ignoring any whose (source_id, external_id) already exists.

        Returns:
            Only the genuinely new items, in input order
        """
        raise NotImplementedError

    @abstractmethod
    async def update_item_tags(self, item_id: str, tags: TagBundle) -> None:
        raise NotImplementedError

    @abstractmethod
    async def upsert_normalized_tags(self, rows: list[NormalizedTag]) -> None:
        """Insert tag rows, ignoring existing (item_id, dimension, value) keys."""
        raise NotImplementedError

    @abstractmethod
    async def list_items(self, limit: int | None = None) -> list[Item]:
        """Return items joined with their source, newest first.

        Items are ordered by published time descending with missing
        timestamps last; ties are broken by item id.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_normalized_tags(self, item_id: str | None = None) -> list[NormalizedTag]:
        raise NotImplementedError

    async def flush(self) -> None:
        """Persist buffered tag writes.

        Tag updates may be buffered until this is called; stores that write
        through need not override it.
        """


class SourceStore(ABC):
    """Configured sources and their health fields."""

    @abstractmethod
    async def list_active_sources(self) -> list[Source]:
        raise NotImplementedError

    @abstractmethod
    async def list_sources(self) -> list[Source]:
        raise NotImplementedError

    @abstractmethod
    async def get_source(self, source_id: str) -> Source | None:
        raise NotImplementedError

    @abstractmethod
    async def upsert_sources(self, configs: list[SourceConfig]) -> list[Source]:
        """Create or update sources keyed on feed URL. Health fields are kept."""
        raise NotImplementedError

    @abstractmethod
    async def update_source_fetch_time(self, source_id: str, fetched_at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    async def update_source_health(self, source_id: str, update: SourceHealthUpdate) -> None:
        raise NotImplementedError


class LogStore(ABC):
    """Append-only ingestion audit log."""

    @abstractmethod
    async def append_ingestion_log(self, entry: IngestionLogEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_logs(
        self,
        since: datetime | None = None,
        source_id: str | None = None,
    ) -> list[IngestionLogEntry]:
        """Return log entries newest first, optionally filtered."""
        raise NotImplementedError


class Store(ItemStore, SourceStore, LogStore):
    """A single backend serving items, sources and logs."""
