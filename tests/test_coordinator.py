"""Tests for the ingestion coordinator."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from signal_desk.core.errors import FetchError, SourceNotFoundError, StoreError, TaggingError
from signal_desk.core.types import AITags, FeedEntry, Source
from signal_desk.ingest import IngestionCoordinator, entry_to_row, parse_iso_date
from signal_desk.scoring import importance_tier
from signal_desk.store import JsonFileStore, MemoryStore
from signal_desk.stories import rank_stories
from signal_desk.tagging import HybridTagger


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeFetcher:
    """Serves canned entries (or raises canned errors) per feed URL."""

    def __init__(self, feeds=None):
        self.feeds = feeds or {}
        self.calls = []

    async def fetch(self, feed_url):
        self.calls.append(feed_url)
        feed = self.feeds.get(feed_url, [])
        if isinstance(feed, Exception):
            raise feed
        return list(feed)


class FakeProvider:
    def __init__(self, by_title=None, fail_titles=()):
        self.by_title = by_title or {}
        self.fail_titles = set(fail_titles)

    async def extract_tags(self, title, excerpt):
        if title in self.fail_titles:
            raise RuntimeError(f"provider exploded on {title}")
        return self.by_title.get(title, AITags())


def _source(source_id="src-1", name="GamesIndustry.biz", source_type="news", active=True):
    return Source(
        id=source_id,
        name=name,
        url=f"https://{source_id}.example.com",
        feed_url=f"https://{source_id}.example.com/feed",
        source_type=source_type,
        active=active,
    )


def _entry(guid, title="Headline", iso_date="2026-03-02T10:00:00+00:00", **kwargs):
    return FeedEntry(guid=guid, link=f"https://example.com/{guid}", title=title, iso_date=iso_date, **kwargs)


def _coordinator(store, fetcher, provider=None):
    return IngestionCoordinator(
        store=store,
        fetcher=fetcher,
        tagger=HybridTagger(provider=provider),
        clock=lambda: NOW,
    )


def _run(coro):
    return asyncio.run(coro)


def test_ingest_one_is_idempotent():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a"), _entry("b")]})
    coordinator = _coordinator(store, fetcher)

    first = _run(coordinator.ingest_one(source))
    second = _run(coordinator.ingest_one(source))

    assert (first.fetched, first.inserted, first.errors) == (2, 2, [])
    assert (second.fetched, second.inserted, second.errors) == (2, 0, [])
    assert len(_run(store.list_items())) == 2

    stored = _run(store.get_source(source.id))
    assert stored.consecutive_errors == 0
    assert stored.last_error is None
    assert stored.last_success_at == NOW
    assert stored.last_fetched_at == NOW
    assert len(_run(store.list_logs())) == 2


def test_duplicate_entries_collapse_to_one_item():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a", title="First"), _entry("a", title="Second")]})

    result = _run(_coordinator(store, fetcher).ingest_one(source))

    assert result.fetched == 2
    assert result.inserted == 1
    items = _run(store.list_items())
    assert [item.title for item in items] == ["First"]


def test_entry_mapping_fallbacks():
    source = _source()
    row = entry_to_row(source, FeedEntry(link="https://example.com/x", title="T"))
    assert row.external_id == "https://example.com/x"

    row = entry_to_row(source, FeedEntry(title="Only a title"))
    assert row.external_id == "Only a title"
    assert row.url == source.url

    row = entry_to_row(source, FeedEntry())
    assert row.external_id == ""
    assert row.title == "(no title)"
    assert row.published_at is None

    row = entry_to_row(
        source,
        FeedEntry(
            guid="g",
            content_snippet="plain",
            content="<p>html</p>",
            creator="Creator",
            author="Author",
            iso_date="2026-03-02T10:00:00Z",
        ),
    )
    assert row.content == "plain"
    assert row.author == "Creator"
    assert row.published_at == datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)

    row = entry_to_row(source, FeedEntry(guid="g", content="<p>html</p>", author="Author"))
    assert row.content == "<p>html</p>"
    assert row.author == "Author"


def test_entries_without_any_key_collide():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [FeedEntry(), FeedEntry(content="other")]})
    result = _run(_coordinator(store, fetcher).ingest_one(source))
    assert result.inserted == 1


def test_parse_iso_date_handles_bad_values():
    assert parse_iso_date(None) is None
    assert parse_iso_date("yesterday") is None
    assert parse_iso_date("2026-03-02T10:00:00").tzinfo is not None


def test_fetch_failure_is_recorded_and_counted():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: FetchError("Status code 500")})
    coordinator = _coordinator(store, fetcher)

    for attempt in range(1, 4):
        result = _run(coordinator.ingest_one(source))
        assert result.errors == ["Fetch: Status code 500"]
        assert result.fetched == 0
        assert result.health_update.ok
        stored = _run(store.get_source(source.id))
        assert stored.consecutive_errors == attempt
        assert stored.last_error == "Fetch: Status code 500"

    assert stored.last_fetched_at is None
    logs = _run(store.list_logs())
    assert len(logs) == 3
    assert all(not entry.success for entry in logs)

    fetcher.feeds[source.feed_url] = [_entry("a")]
    result = _run(coordinator.ingest_one(source))
    assert result.ok
    stored = _run(store.get_source(source.id))
    assert stored.consecutive_errors == 0
    assert stored.last_error is None
    assert stored.last_success_at == NOW


def test_unexpected_fetcher_exception_is_a_fetch_error():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: RuntimeError("socket closed")})
    result = _run(_coordinator(store, fetcher).ingest_one(source))
    assert result.errors == ["Fetch: socket closed"]


def test_empty_feed_is_success():
    store = MemoryStore()
    source = store.add_source(_source())
    result = _run(_coordinator(store, FakeFetcher()).ingest_one(source))

    assert (result.fetched, result.inserted, result.errors) == (0, 0, [])
    stored = _run(store.get_source(source.id))
    assert stored.last_fetched_at == NOW
    assert stored.consecutive_errors == 0


class FailingInsertStore(MemoryStore):
    async def upsert_items(self, rows):
        raise StoreError("duplicate key value violates constraint")


def test_insert_failure_is_a_db_error():
    store = FailingInsertStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a")]})

    result = _run(_coordinator(store, fetcher).ingest_one(source))

    assert result.fetched == 1
    assert result.inserted == 0
    assert result.errors == ["DB: duplicate key value violates constraint"]
    stored = _run(store.get_source(source.id))
    assert stored.consecutive_errors == 1
    assert stored.last_fetched_at == NOW


class DroppedConnectionStore(MemoryStore):
    async def upsert_items(self, rows):
        raise ConnectionError("connection reset by peer")


def test_unexpected_store_exception_is_a_db_error():
    store = DroppedConnectionStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a")]})

    result = _run(_coordinator(store, fetcher).ingest_one(source))

    assert result.errors == ["DB: connection reset by peer"]
    assert result.log_write.ok
    assert result.log_write.value.success is False
    stored = _run(store.get_source(source.id))
    assert stored.consecutive_errors == 1
    assert stored.last_error == "DB: connection reset by peer"
    assert len(_run(store.list_logs())) == 1


class TimeoutOnFetchTimeStore(MemoryStore):
    async def update_source_fetch_time(self, source_id, fetched_at):
        raise TimeoutError("statement timeout")


def test_fetch_time_failure_of_any_kind_is_a_db_error():
    store = TimeoutOnFetchTimeStore()
    source = store.add_source(_source())

    result = _run(_coordinator(store, FakeFetcher()).ingest_one(source))

    assert result.errors == ["DB: statement timeout"]
    assert _run(store.get_source(source.id)).consecutive_errors == 1


def test_items_from_a_failed_snapshot_write_are_inserted_next_run(tmp_path):
    store = JsonFileStore(tmp_path)
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a", title="Roblox earnings on iOS")]})
    coordinator = _coordinator(store, fetcher)
    (tmp_path / "items.json").mkdir()

    first = _run(coordinator.ingest_one(source))
    assert first.inserted == 0
    assert len(first.errors) == 1
    assert first.errors[0].startswith("DB: ")

    (tmp_path / "items.json").rmdir()
    second = _run(coordinator.ingest_one(source))

    assert (second.inserted, second.errors) == (1, [])
    item = _run(JsonFileStore(tmp_path).list_items())[0]
    assert "earnings" in item.tags.category
    assert item.tags.platform == ["mobile"]


class FailingLogStore(MemoryStore):
    async def append_ingestion_log(self, entry):
        raise StoreError("log table unavailable")


def test_log_write_failure_is_swallowed_but_visible():
    store = FailingLogStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a")]})

    result = _run(_coordinator(store, fetcher).ingest_one(source))

    assert result.ok
    assert result.inserted == 1
    assert result.log_write.ok is False
    assert "log table unavailable" in result.log_write.error
    assert result.health_update.ok
    assert _run(store.get_source(source.id)).last_success_at == NOW


class FailingHealthStore(MemoryStore):
    async def update_source_health(self, source_id, update):
        raise StoreError("sources table locked")


def test_health_update_failure_is_swallowed_but_visible():
    store = FailingHealthStore()
    source = store.add_source(_source())

    result = _run(_coordinator(store, FakeFetcher()).ingest_one(source))

    assert result.ok
    assert result.health_update.ok is False
    assert result.health_update.error == "sources table locked"
    assert result.log_write.ok


def test_log_entry_summarizes_attempt():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a"), _entry("b")]})
    result = _run(_coordinator(store, fetcher).ingest_one(source))

    entry = result.log_write.value
    assert entry.source_id == source.id
    assert entry.source_name == source.name
    assert (entry.fetched, entry.inserted, entry.errors, entry.success) == (2, 2, [], True)
    assert entry.started_at == NOW
    assert entry.duration_ms >= 0


def test_provider_failure_keeps_rule_tags_per_item():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher(
        {
            source.feed_url: [
                _entry("a", title="Roblox earnings beat"),
                _entry("b", title="Broken headline"),
                _entry("c", title="EA acquires studio"),
            ]
        }
    )
    provider = FakeProvider(
        by_title={
            "Roblox earnings beat": AITags(company=["Roblox"]),
            "EA acquires studio": AITags(company=["Electronic Arts"]),
        },
        fail_titles={"Broken headline"},
    )

    result = _run(_coordinator(store, fetcher, provider).ingest_one(source))

    assert result.inserted == 3
    assert result.errors == []
    by_title = {item.title: item for item in _run(store.list_items())}
    assert by_title["Roblox earnings beat"].tags.company == ["Roblox"]
    assert by_title["EA acquires studio"].tags.company == ["Electronic Arts"]
    assert by_title["Broken headline"].tags.category == ["article"]
    assert by_title["Broken headline"].tags.company == []

    companies = {row.value for row in _run(store.list_normalized_tags()) if row.dimension == "company"}
    assert companies == {"Roblox", "Electronic Arts"}


class TagWriteFailsForOneItemStore(MemoryStore):
    async def update_item_tags(self, item_id, tags):
        if self._items[item_id].title == "Broken headline":
            raise StoreError("row lock timeout")
        await super().update_item_tags(item_id, tags)


def test_tag_write_failure_is_isolated_per_item():
    store = TagWriteFailsForOneItemStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher(
        {source.feed_url: [_entry("a", title="Roblox earnings beat"), _entry("b", title="Broken headline")]}
    )

    result = _run(_coordinator(store, fetcher).ingest_one(source))

    assert result.inserted == 2
    assert result.errors == []
    by_title = {item.title: item for item in _run(store.list_items())}
    assert by_title["Roblox earnings beat"].tags.category == ["article", "earnings"]
    assert by_title["Broken headline"].tags.category == []


def test_ai_tagging_error_keeps_rule_tags():
    class ErroringProvider:
        async def extract_tags(self, title, excerpt):
            raise TaggingError("HTTPStatusError: 429")

    store = MemoryStore()
    source = store.add_source(_source(source_type="newsletter"))
    fetcher = FakeFetcher({source.feed_url: [_entry("a", title="Roblox launches battle pass on iOS")]})

    _run(_coordinator(store, fetcher, ErroringProvider()).ingest_one(source))

    item = _run(store.list_items())[0]
    assert item.tags.category == ["analysis"]
    assert item.tags.platform == ["mobile"]
    assert item.tags.theme == ["ugc", "live-services"]
    assert item.tags.company == []


def test_retagging_reingested_items_does_not_duplicate_tag_rows():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a", title="Roblox earnings beat")]})
    coordinator = _coordinator(store, fetcher, FakeProvider({"Roblox earnings beat": AITags(company=["Roblox"])}))

    _run(coordinator.ingest_one(source))
    before = _run(store.list_normalized_tags())
    assert _run(coordinator.retag_items()) == 1
    _run(coordinator.ingest_one(source))
    assert len(_run(store.list_normalized_tags())) == len(before)


def test_retag_items_backfills_new_ai_tags():
    store = MemoryStore()
    source = store.add_source(_source())
    fetcher = FakeFetcher({source.feed_url: [_entry("a", title="Take-Two reports earnings")]})
    _run(_coordinator(store, fetcher).ingest_one(source))
    assert _run(store.list_items())[0].tags.company == []

    provider = FakeProvider({"Take-Two reports earnings": AITags(company=["Take-Two Interactive"])})
    tagged = _run(_coordinator(store, fetcher, provider).retag_items())

    assert tagged == 1
    item = _run(store.list_items())[0]
    assert item.tags.company == ["Take-Two Interactive"]
    assert item.tags.category == ["article", "earnings"]


def test_ingest_all_covers_active_sources_independently():
    store = MemoryStore()
    ok = store.add_source(_source("ok", name="Good Feed"))
    bad = store.add_source(_source("bad", name="Bad Feed"))
    store.add_source(_source("off", name="Inactive Feed", active=False))
    fetcher = FakeFetcher(
        {
            ok.feed_url: [_entry("a")],
            bad.feed_url: FetchError("ConnectTimeout: timed out"),
        }
    )

    results = _run(_coordinator(store, fetcher).ingest_all())

    assert [r.source for r in results] == ["Good Feed", "Bad Feed"]
    assert results[0].ok and results[0].inserted == 1
    assert results[1].errors == ["Fetch: ConnectTimeout: timed out"]
    assert "https://off.example.com/feed" not in fetcher.calls


def test_ingest_all_substitutes_synthetic_result_when_task_raises(monkeypatch):
    store = MemoryStore()
    store.add_source(_source("ok", name="Good Feed"))
    store.add_source(_source("boom", name="Exploding Feed"))
    coordinator = _coordinator(store, FakeFetcher())
    original = coordinator.ingest_one

    async def flaky_ingest_one(source):
        if source.id == "boom":
            raise RuntimeError("worker crashed")
        return await original(source)

    monkeypatch.setattr(coordinator, "ingest_one", flaky_ingest_one)
    results = _run(coordinator.ingest_all())

    assert [r.source for r in results] == ["Good Feed", "Exploding Feed"]
    assert results[0].ok
    assert results[1].errors == ["worker crashed"]
    assert results[1].fetched == 0
    assert results[1].inserted == 0


def test_ingest_all_with_no_sources():
    assert _run(_coordinator(MemoryStore(), FakeFetcher()).ingest_all()) == []


def test_ingest_all_propagates_source_listing_failure():
    class BrokenStore(MemoryStore):
        async def list_active_sources(self):
            raise StoreError("connection refused")

    with pytest.raises(StoreError, match="connection refused"):
        _run(_coordinator(BrokenStore(), FakeFetcher()).ingest_all())


def test_ingest_source_id():
    store = MemoryStore()
    source = store.add_source(_source(active=False))
    fetcher = FakeFetcher({source.feed_url: [_entry("a")]})
    coordinator = _coordinator(store, fetcher)

    result = _run(coordinator.ingest_source_id(source.id))
    assert result.inserted == 1

    with pytest.raises(SourceNotFoundError):
        _run(coordinator.ingest_source_id("missing"))


def test_end_to_end_cross_source_story():
    store = MemoryStore()
    mobile = store.add_source(_source("mg", name="MobileGamer.biz"))
    gi = store.add_source(_source("gi", name="GamesIndustry.biz"))
    t = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    fetcher = FakeFetcher(
        {
            mobile.feed_url: [_entry("ea-1", title="EA acquires mobile studio for $500M", iso_date=t.isoformat())],
            gi.feed_url: [
                _entry(
                    "ea-2",
                    title="Electronic Arts buys mobile studio in $500M deal",
                    iso_date=(t + timedelta(hours=1)).isoformat(),
                )
            ],
        }
    )
    provider = FakeProvider(
        {
            "EA acquires mobile studio for $500M": AITags(company=["Electronic Arts"]),
            "Electronic Arts buys mobile studio in $500M deal": AITags(company=["Electronic Arts"]),
        }
    )

    results = _run(_coordinator(store, fetcher, provider).ingest_all())
    assert all(r.ok for r in results)

    items = _run(store.list_items())
    for item in items:
        assert "m-and-a" in item.tags.category
        assert item.tags.company == ["Electronic Arts"]

    ranked = rank_stories(items)
    assert len(ranked) == 1
    story = ranked[0]
    assert story.cluster.is_multi_source
    assert story.cluster.lead.title == "Electronic Arts buys mobile studio in $500M deal"
    assert story.score >= 0.30 + 0.10 + 0.05
    assert story.score == pytest.approx(0.73)
    assert importance_tier(story.score) == "critical"
