"""
Command-line interface for Signal Desk.

Uses Typer to expose ingestion, story ranking and health reporting.
Supports loading .env files for API key configuration.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from .config import AppConfig, load_config
from .core.errors import SignalDeskError
from .runner import run_health, run_ingest, run_retag, run_seed, run_signals, run_stories

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False, help="Feed aggregation, tagging and story ranking.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="Path to YAML config file.")
DataDirOption = typer.Option(None, "--data-dir", help="Override the store data directory.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


def _load(
    config: Path | None,
    log_level: str | None,
    api_key: str | None = None,
) -> AppConfig:
    # Load environment variables from .env if available
    if load_dotenv is not None:
        load_dotenv()

    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    if api_key:
        cfg.provider.api_key = api_key
    return cfg


def _fail(exc: SignalDeskError) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.command()
def seed(
    config: Path | None = ConfigOption,
    data_dir: Path | None = DataDirOption,
    log_level: str | None = LogLevelOption,
):
    """Create or update the configured sources in the store."""
    cfg = _load(config, log_level)
    try:
        run_seed(cfg, data_dir, console=console)
    except SignalDeskError as exc:
        _fail(exc)


@app.command()
def ingest(
    source: str | None = typer.Option(None, "--source", help="Ingest only the source with this id."),
    config: Path | None = ConfigOption,
    data_dir: Path | None = DataDirOption,
    log_level: str | None = LogLevelOption,
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="OPENAI_API_KEY",
        help="Override provider API key (or set OPENAI_API_KEY / .env).",
    ),
):
    """Fetch all active sources (or one), store new items and tag them.

    Args:
        source: Optional source id for a targeted re-ingestion
        config: Optional path to YAML config file
        data_dir: Store data directory override
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        api_key: Override AI provider API key
    """
    cfg = _load(config, log_level, api_key)
    try:
        results = run_ingest(cfg, data_dir, source_id=source, console=console)
    except SignalDeskError as exc:
        _fail(exc)
        return
    if results and all(not r.ok for r in results):
        raise typer.Exit(code=1)


@app.command()
def retag(
    config: Path | None = ConfigOption,
    data_dir: Path | None = DataDirOption,
    log_level: str | None = LogLevelOption,
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="OPENAI_API_KEY",
        help="Override provider API key (or set OPENAI_API_KEY / .env).",
    ),
):
    """Re-run the hybrid tagger over all stored items."""
    cfg = _load(config, log_level, api_key)
    try:
        run_retag(cfg, data_dir, console=console)
    except SignalDeskError as exc:
        _fail(exc)


@app.command()
def stories(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of stories to show."),
    threshold: float | None = typer.Option(
        None, "--threshold", min=0.0, max=1.0, help="Title similarity threshold for clustering."
    ),
    explain: bool = typer.Option(False, "--explain", help="Show the score breakdown per story."),
    config: Path | None = ConfigOption,
    data_dir: Path | None = DataDirOption,
    log_level: str | None = LogLevelOption,
):
    """Cluster stored items into stories and rank them by importance."""
    cfg = _load(config, log_level)
    if threshold is not None:
        cfg.cluster.threshold = threshold
    try:
        run_stories(cfg, data_dir, limit=limit, explain=explain, console=console)
    except SignalDeskError as exc:
        _fail(exc)


@app.command()
def signals(
    config: Path | None = ConfigOption,
    data_dir: Path | None = DataDirOption,
    log_level: str | None = LogLevelOption,
):
    """Show top stories, worth-reading picks and trending companies."""
    cfg = _load(config, log_level)
    try:
        run_signals(cfg, data_dir, console=console)
    except SignalDeskError as exc:
        _fail(exc)


@app.command()
def health(
    config: Path | None = ConfigOption,
    data_dir: Path | None = DataDirOption,
    log_level: str | None = LogLevelOption,
):
    """Report source freshness, erroring sources and recent run totals."""
    cfg = _load(config, log_level)
    try:
        report = run_health(cfg, data_dir, console=console)
    except SignalDeskError as exc:
        _fail(exc)
        return
    if report.status == "unhealthy":
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
