"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: Feed fetching settings
- ProviderConfig: AI enrichment provider settings
- ClusterConfig: Story clustering settings
- HealthConfig: Source health thresholds
- StoreConfig: Data directory of the file-backed store
- LoggingConfig: Logging behavior
- SourceConfig: One configured feed, used to seed the source store
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FetchConfig:
    """Configuration for feed fetching.

    Attributes:
        timeout_seconds: HTTP request timeout; a hung feed fails with a fetch error
        retries: Number of retry attempts for failed requests
        user_agent: HTTP User-Agent header string
        trust_env: Whether to respect system proxy settings
    """

    timeout_seconds: float = 15.0
    retries: int = 1
    user_agent: str = "SignalDesk/1.0"
    trust_env: bool = True


@dataclass
class ProviderConfig:
    """Configuration for the AI enrichment provider.

    Attributes:
        name: Provider name ("openai", "openai_compatible" or "gemini")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API (None uses the provider default)
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Request timeout
        max_tokens: Output token budget for one tagging call
        excerpt_chars: Leading body characters sent along with the title
    """

    name: str = "openai"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 30.0
    max_tokens: int = 200
    excerpt_chars: int = 500


@dataclass
class ClusterConfig:
    """Configuration for story clustering.

    Attributes:
        threshold: Minimum Jaccard similarity between seed and candidate titles
        window_hours: Maximum publication time difference between seed and candidate
        max_cluster_size: Hard cap on members per cluster
    """

    threshold: float = 0.3
    window_hours: float = 72
    max_cluster_size: int = 10


@dataclass
class HealthConfig:
    """Thresholds for the source health report.

    Attributes:
        healthy_hours: A source fetched more recently than this is healthy
        stale_hours: A source fetched more recently than this (but not healthy) is stale
        log_window_hours: Window of ingestion logs summarized in the report
    """

    healthy_hours: float = 26
    stale_hours: float = 50
    log_window_hours: float = 24


@dataclass
class StoreConfig:
    """Configuration for the file-backed store.

    Attributes:
        data_dir: Directory holding the store snapshots and the ingestion log
    """

    data_dir: str = "data"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate AI enrichment logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls_authors")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls_authors"
    llm_log_file: str = "llm.jsonl"


@dataclass
class SourceConfig:
    """One configured feed.

    Attributes:
        name: Display name
        url: Display URL of the publication
        feed_url: URL of the feed document
        source_type: "news", "newsletter", "analysis", "podcast", ...
        active: Whether ingest_all picks the source up
    """

    name: str
    url: str
    feed_url: str
    source_type: str = "news"
    active: bool = True


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    sources: list[SourceConfig] = field(default_factory=list)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "fetch": {
            "timeout_seconds": cfg.fetch.timeout_seconds,
            "retries": cfg.fetch.retries,
            "user_agent": cfg.fetch.user_agent,
            "trust_env": cfg.fetch.trust_env,
        },
        "provider": {
            "name": cfg.provider.name,
            "model": cfg.provider.model,
            "api_key_env": cfg.provider.api_key_env,
            "base_url": cfg.provider.base_url,
            "api_key": cfg.provider.api_key,
            "trust_env": cfg.provider.trust_env,
            "timeout_seconds": cfg.provider.timeout_seconds,
            "max_tokens": cfg.provider.max_tokens,
            "excerpt_chars": cfg.provider.excerpt_chars,
        },
        "cluster": {
            "threshold": cfg.cluster.threshold,
            "window_hours": cfg.cluster.window_hours,
            "max_cluster_size": cfg.cluster.max_cluster_size,
        },
        "health": {
            "healthy_hours": cfg.health.healthy_hours,
            "stale_hours": cfg.health.stale_hours,
            "log_window_hours": cfg.health.log_window_hours,
        },
        "store": {
            "data_dir": cfg.store.data_dir,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
            "llm_log_enabled": cfg.logging.llm_log_enabled,
            "llm_log_detail": cfg.logging.llm_log_detail,
            "llm_log_redaction": cfg.logging.llm_log_redaction,
            "llm_log_file": cfg.logging.llm_log_file,
        },
        "sources": [
            {
                "name": s.name,
                "url": s.url,
                "feed_url": s.feed_url,
                "source_type": s.source_type,
                "active": s.active,
            }
            for s in cfg.sources
        ],
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        fetch=FetchConfig(**data["fetch"]),
        provider=ProviderConfig(**data["provider"]),
        cluster=ClusterConfig(**data["cluster"]),
        health=HealthConfig(**data["health"]),
        store=StoreConfig(**data["store"]),
        logging=LoggingConfig(**data["logging"]),
        sources=[SourceConfig(**s) for s in data.get("sources") or []],
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
