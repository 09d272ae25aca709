"""Tests for the source health report."""

from datetime import datetime, timedelta, timezone

from signal_desk.config import HealthConfig
from signal_desk.core.types import IngestionLogEntry, Source
from signal_desk.health import summarize_health


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def _source(name, fetched_hours_ago=1, consecutive_errors=0, last_error=None, active=True):
    fetched = None if fetched_hours_ago is None else NOW - timedelta(hours=fetched_hours_ago)
    return Source(
        id=name,
        name=name,
        url="https://example.com",
        feed_url=f"https://example.com/{name}",
        active=active,
        last_fetched_at=fetched,
        consecutive_errors=consecutive_errors,
        last_error=last_error,
    )


def _log(hours_ago, success=True, fetched=10, inserted=2):
    started = NOW - timedelta(hours=hours_ago)
    return IngestionLogEntry(
        source_id="s",
        source_name="s",
        started_at=started,
        finished_at=started,
        fetched=fetched,
        inserted=inserted,
        success=success,
    )


def test_all_fresh_sources_are_healthy():
    report = summarize_health([_source("a"), _source("b", fetched_hours_ago=25.9)], [], NOW)
    assert report.status == "healthy"
    assert report.total == 2
    assert report.healthy == ["a", "b"]


def test_freshness_buckets():
    sources = [
        _source("fresh", fetched_hours_ago=2),
        _source("stale", fetched_hours_ago=26),
        _source("dead", fetched_hours_ago=50),
        _source("never", fetched_hours_ago=None),
        _source("ignored", fetched_hours_ago=None, active=False),
    ]
    report = summarize_health(sources, [], NOW)
    assert report.healthy == ["fresh"]
    assert report.stale == ["stale"]
    assert report.dead == ["dead", "never"]
    assert report.total == 4


def test_erroring_sources_default_error_text():
    sources = [
        _source("a", consecutive_errors=2, last_error="Fetch: Status code 500"),
        _source("b", consecutive_errors=1),
        _source("c"),
        _source("d"),
        _source("e"),
    ]
    report = summarize_health(sources, [], NOW)
    assert [(e.name, e.consecutive_errors, e.last_error) for e in report.erroring] == [
        ("a", 2, "Fetch: Status code 500"),
        ("b", 1, "unknown"),
    ]
    assert report.status == "degraded"


def test_majority_dead_or_erroring_is_unhealthy():
    dead = [_source("a", fetched_hours_ago=100), _source("b", fetched_hours_ago=100), _source("c")]
    assert summarize_health(dead, [], NOW).status == "unhealthy"

    erroring = [_source("a", consecutive_errors=1), _source("b", consecutive_errors=3), _source("c")]
    assert summarize_health(erroring, [], NOW).status == "unhealthy"

    # Exactly half is not a majority.
    half = [_source("a", consecutive_errors=1), _source("b")]
    assert summarize_health(half, [], NOW).status == "degraded"


def test_recent_run_stats_use_log_window():
    logs = [
        _log(1),
        _log(5, success=False, fetched=0, inserted=0),
        _log(30, fetched=100, inserted=100),
    ]
    report = summarize_health([_source("a")], logs, NOW)
    assert report.recent.runs == 2
    assert report.recent.successes == 1
    assert report.recent.failures == 1
    assert report.recent.fetched == 10
    assert report.recent.inserted == 2
    assert report.last_run == NOW - timedelta(hours=1)

    wide = summarize_health([_source("a")], logs, NOW, HealthConfig(log_window_hours=48))
    assert wide.recent.runs == 3


def test_no_logs_means_no_last_run():
    report = summarize_health([], [], NOW)
    assert report.status == "healthy"
    assert report.total == 0
    assert report.last_run is None
