"""
Source health report.

Classifies active sources by how long ago they were last fetched, lists
sources with a non-zero consecutive error count, and summarizes recent
ingestion runs from the ingestion log.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import math

from .config import HealthConfig
from .core.types import IngestionLogEntry, Source


STATUS_HEALTHY = "healthy"
STATUS_DEGRADED = "degraded"
STATUS_UNHEALTHY = "unhealthy"


@dataclass
class ErroringSource:
    name: str
    consecutive_errors: int
    last_error: str


@dataclass
class RunStats:
    """Totals over ingestion log entries inside the report window."""

    runs: int = 0
    successes: int = 0
    failures: int = 0
    fetched: int = 0
    inserted: int = 0


@dataclass
class HealthReport:
    """Health summary over all active sources.

    Attributes:
        status: "healthy", "degraded" or "unhealthy"
        total: Number of active sources
        healthy: Names of recently fetched sources
        stale: Names of sources fetched a while ago
        dead: Names of sources not fetched for too long, or never
        erroring: Sources whose last attempt failed
        recent: Run totals over the log window
        last_run: Start time of the most recent logged run
    """

    status: str
    total: int
    healthy: list[str] = field(default_factory=list)
    stale: list[str] = field(default_factory=list)
    dead: list[str] = field(default_factory=list)
    erroring: list[ErroringSource] = field(default_factory=list)
    recent: RunStats = field(default_factory=RunStats)
    last_run: datetime | None = None


def hours_since(moment: datetime | None, now: datetime) -> float:
    """Hours elapsed since moment; infinite when it never happened."""
    if moment is None:
        return math.inf
    return (now - moment).total_seconds() / 3600


def summarize_health(
    sources: list[Source],
    logs: list[IngestionLogEntry],
    now: datetime,
    cfg: HealthConfig | None = None,
) -> HealthReport:
    """Build a health report for the active sources.

    Args:
        sources: Sources to consider; inactive ones are ignored
        logs: Ingestion log entries, any order
        now: Reference time
        cfg: Thresholds; defaults when omitted
    """
    cfg = cfg or HealthConfig()
    active = [s for s in sources if s.active]
    report = HealthReport(status=STATUS_HEALTHY, total=len(active))

    for source in active:
        age = hours_since(source.last_fetched_at, now)
        if age < cfg.healthy_hours:
            report.healthy.append(source.name)
        elif age < cfg.stale_hours:
            report.stale.append(source.name)
        else:
            report.dead.append(source.name)

        if source.consecutive_errors > 0:
            report.erroring.append(
                ErroringSource(
                    name=source.name,
                    consecutive_errors=source.consecutive_errors,
                    last_error=source.last_error or "unknown",
                )
            )

    half = report.total * 0.5
    if not report.dead and not report.erroring:
        report.status = STATUS_HEALTHY
    elif len(report.dead) > half or len(report.erroring) > half:
        report.status = STATUS_UNHEALTHY
    else:
        report.status = STATUS_DEGRADED

    window_start = now - timedelta(hours=cfg.log_window_hours)
    for entry in logs:
        if report.last_run is None or entry.started_at > report.last_run:
            report.last_run = entry.started_at
        if entry.started_at < window_start:
            continue
        report.recent.runs += 1
        if entry.success:
            report.recent.successes += 1
        else:
            report.recent.failures += 1
        report.recent.fetched += entry.fetched
        report.recent.inserted += entry.inserted

    return report
