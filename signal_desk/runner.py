"""
Command orchestration for Signal Desk.

Wires configuration into concrete collaborators (file-backed store, feed
fetcher, AI provider, hybrid tagger, ingestion coordinator) and renders
results with Rich. Each run_* function backs one CLI command and returns
its data so callers other than the CLI can use it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import AppConfig
from .core.types import IngestResult, Source
from .fetch import FeedFetcher
from .health import HealthReport, summarize_health
from .ingest import IngestionCoordinator
from .llm.providers import create_provider
from .logging_utils import log_event, setup_llm_logger, setup_logging
from .scoring import TIER_CRITICAL, TIER_HIGH, TIER_MEDIUM
from .store import JsonFileStore, Store
from .stories import RankedStory, rank_stories, top_stories, trending_companies, worth_reading
from .tagging import HybridTagger


_TIER_STYLES = {
    TIER_CRITICAL: "bold red",
    TIER_HIGH: "yellow",
    TIER_MEDIUM: "cyan",
}


def build_store(cfg: AppConfig, data_dir: Path | None = None) -> Store:
    return JsonFileStore(data_dir or Path(cfg.store.data_dir))


def build_coordinator(
    cfg: AppConfig,
    store: Store,
    logger: logging.Logger | None = None,
    llm_logger: logging.Logger | None = None,
) -> IngestionCoordinator:
    """Assemble an ingestion coordinator from configuration.

    The AI provider is optional; without an API key the tagger runs rules
    only.
    """
    provider = create_provider(cfg.provider, cfg.logging, llm_logger)
    if provider is None:
        log_event(logger, "AI tagging disabled (no API key)", event="ai_tagging_disabled")
    tagger = HybridTagger(provider=provider, excerpt_chars=cfg.provider.excerpt_chars)
    return IngestionCoordinator(store=store, fetcher=FeedFetcher(cfg.fetch), tagger=tagger)


def _setup(cfg: AppConfig, data_dir: Path | None) -> tuple[Store, logging.Logger, logging.Logger | None]:
    root = data_dir or Path(cfg.store.data_dir)
    log_dir = root / "logs"
    logger = setup_logging(cfg.logging, log_dir)
    llm_logger = setup_llm_logger(cfg.logging, log_dir)
    return build_store(cfg, root), logger, llm_logger


def run_seed(cfg: AppConfig, data_dir: Path | None = None, console: Console | None = None) -> list[Source]:
    """Upsert the configured sources into the source store."""
    console = console or Console()
    store, logger, _ = _setup(cfg, data_dir)
    sources = asyncio.run(store.upsert_sources(cfg.sources))
    log_event(logger, "Sources seeded", event="sources_seeded", sources=len(sources))

    table = Table(title="Sources")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Active")
    table.add_column("Feed URL", overflow="fold")
    for source in sources:
        table.add_row(source.name, source.source_type, "yes" if source.active else "no", source.feed_url)
    console.print(table)
    return sources


def run_ingest(
    cfg: AppConfig,
    data_dir: Path | None = None,
    source_id: str | None = None,
    console: Console | None = None,
) -> list[IngestResult]:
    """Ingest all active sources, or the single source with source_id."""
    console = console or Console()
    store, logger, llm_logger = _setup(cfg, data_dir)
    coordinator = build_coordinator(cfg, store, logger, llm_logger)

    if source_id:
        results = [asyncio.run(coordinator.ingest_source_id(source_id))]
    else:
        results = asyncio.run(coordinator.ingest_all())

    table = Table(title="Ingestion")
    table.add_column("Source")
    table.add_column("Fetched", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Errors", overflow="fold")
    for result in results:
        errors = "; ".join(result.errors)
        table.add_row(
            result.source,
            str(result.fetched),
            str(result.inserted),
            f"[red]{errors}[/red]" if errors else "",
        )
    console.print(table)
    console.print(
        f"{sum(r.inserted for r in results)} new items from {len(results)} sources, "
        f"{sum(1 for r in results if not r.ok)} with errors"
    )
    return results


def run_retag(cfg: AppConfig, data_dir: Path | None = None, console: Console | None = None) -> int:
    """Re-run the hybrid tagger over every stored item."""
    console = console or Console()
    store, logger, llm_logger = _setup(cfg, data_dir)
    coordinator = build_coordinator(cfg, store, logger, llm_logger)
    tagged = asyncio.run(coordinator.retag_items())
    console.print(f"Re-tagged {tagged} items")
    return tagged


def run_stories(
    cfg: AppConfig,
    data_dir: Path | None = None,
    limit: int = 20,
    explain: bool = False,
    console: Console | None = None,
) -> list[RankedStory]:
    """Print the ranked story list."""
    console = console or Console()
    store, _, _ = _setup(cfg, data_dir)
    items = asyncio.run(store.list_items())
    ranked = rank_stories(items, cfg.cluster)[:limit]

    table = Table(title=f"Stories ({len(items)} items)")
    table.add_column("Score", justify="right")
    table.add_column("Tier")
    table.add_column("Headline", overflow="fold")
    table.add_column("Sources", overflow="fold")
    table.add_column("Articles", justify="right")
    for story in ranked:
        style = _TIER_STYLES.get(story.tier, "dim")
        table.add_row(
            f"{story.score:.2f}",
            f"[{style}]{story.tier}[/{style}]",
            story.cluster.lead.title,
            ", ".join(story.cluster.source_names),
            str(len(story.cluster.members)),
        )
    console.print(table)

    if explain:
        for story in ranked:
            console.print(f"[bold]{story.cluster.lead.title}[/bold] ({story.score:.2f})")
            for factor in story.breakdown.factors:
                detail = f" [dim]{factor.detail}[/dim]" if factor.detail else ""
                console.print(f"  +{factor.value:.2f} {factor.label}{detail}")
    return ranked


def run_signals(cfg: AppConfig, data_dir: Path | None = None, console: Console | None = None) -> None:
    """Print top stories, worth-reading picks and trending companies."""
    console = console or Console()
    store, _, _ = _setup(cfg, data_dir)
    items = asyncio.run(store.list_items())
    now = datetime.now(timezone.utc)
    ranked = rank_stories(items, cfg.cluster)

    top = Table(title="Top stories")
    top.add_column("Score", justify="right")
    top.add_column("Headline", overflow="fold")
    top.add_column("Sources", justify="right")
    top.add_column("Companies")
    top.add_column("Trend")
    for story in top_stories(ranked, now):
        top.add_row(
            f"{story.score:.2f}",
            story.title,
            str(story.source_count),
            ", ".join(story.companies),
            story.trend,
        )
    console.print(top)

    reading = Table(title="Worth reading")
    reading.add_column("Score", justify="right")
    reading.add_column("Title", overflow="fold")
    reading.add_column("Source")
    for pick in worth_reading(items):
        reading.add_row(f"{pick.score:.2f}", pick.title, pick.source)
    console.print(reading)

    companies = Table(title="Trending companies")
    companies.add_column("Company")
    companies.add_column("Mentions", justify="right")
    for company in trending_companies(items):
        companies.add_row(company.name, f"{company.mentions}/{company.max_mentions}")
    console.print(companies)


def run_health(cfg: AppConfig, data_dir: Path | None = None, console: Console | None = None) -> HealthReport:
    """Print the source health report."""
    console = console or Console()
    store, _, _ = _setup(cfg, data_dir)
    sources = asyncio.run(store.list_active_sources())
    logs = asyncio.run(store.list_logs())
    report = summarize_health(sources, logs, datetime.now(timezone.utc), cfg.health)

    style = {"healthy": "green", "degraded": "yellow"}.get(report.status, "red")
    console.print(f"Status: [{style}]{report.status}[/{style}]")
    console.print(
        f"Sources: {report.total} active, {len(report.healthy)} healthy, "
        f"{len(report.stale)} stale, {len(report.dead)} dead"
    )
    last_run = report.last_run.isoformat() if report.last_run else "never"
    console.print(
        f"Last {cfg.health.log_window_hours:g}h: {report.recent.runs} runs, "
        f"{report.recent.failures} failed, {report.recent.inserted} inserted (last run: {last_run})"
    )

    if report.erroring:
        table = Table(title="Erroring sources")
        table.add_column("Source")
        table.add_column("Consecutive", justify="right")
        table.add_column("Last error", overflow="fold")
        for source in report.erroring:
            table.add_row(source.name, str(source.consecutive_errors), source.last_error)
        console.print(table)
    return report
