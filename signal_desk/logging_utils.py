"""Logging setup for ingestion runs.

Two loggers are configured per run:

- ``signal_desk``: operational events (source fetched, items stored, tagging
  failures). Console output goes through Rich; the file copy is JSONL so each
  event's structured fields (``event``, ``source``, ``inserted`` ...) survive.
- ``signal_desk.llm``: an audit trail of AI enrichment calls, written only to
  a JSONL file and redacted according to ``LoggingConfig.llm_log_redaction``.

Structured fields are passed as keyword arguments to :func:`log_event` and
:func:`log_warning` and end up as top-level keys in the JSONL record.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig


_URL_RE = re.compile(r"https?://\S+")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


class JsonlFormatter(logging.Formatter):
    """One JSON object per line with the record's extra fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def setup_logging(cfg: LoggingConfig, log_dir: Path | None) -> logging.Logger:
    level = _parse_level(cfg.level)
    logger = _fresh_logger("signal_desk", level)

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
        console.setLevel(level)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console)

    if cfg.file and log_dir is not None:
        formatter = JsonlFormatter() if cfg.format == "jsonl" else logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        logger.addHandler(_file_handler(log_dir / cfg.filename, level, formatter))

    return logger


def setup_llm_logger(cfg: LoggingConfig, log_dir: Path | None) -> logging.Logger | None:
    """Return the AI audit logger, or None when disabled or there is nowhere to write."""
    if not cfg.llm_log_enabled or log_dir is None:
        return None
    level = _parse_level(cfg.level)
    logger = _fresh_logger("signal_desk.llm", level)
    logger.addHandler(_file_handler(log_dir / cfg.llm_log_file, level, JsonlFormatter()))
    return logger


def log_event(logger: logging.Logger | None, message: str, **fields: Any) -> None:
    if logger is not None:
        logger.info(message, extra=fields)


def log_warning(logger: logging.Logger | None, message: str, **fields: Any) -> None:
    if logger is not None:
        logger.warning(message, extra=fields)


def redact_text(text: str, mode: str) -> str:
    """Apply an LLM log redaction mode to prompt or response text."""
    if mode == "redact_content":
        return ""
    if mode == "redact_urls_authors":
        return _URL_RE.sub("[REDACTED_URL]", text)
    return text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}...(truncated)"


def _fresh_logger(name: str, level: int) -> logging.Logger:
    # Handlers are replaced so repeated setup in one process does not duplicate output.
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    return logger


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _parse_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
