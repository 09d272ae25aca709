"""Abstract interface for AI tagging providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

from ...config import LoggingConfig, ProviderConfig
from ...core.types import AITags
from ...logging_utils import log_event, redact_text, truncate_text


class TaggingProvider(ABC):
    """Provider interface for company/theme extraction.

    Implementations raise TaggingError for every transport, status or
    parse failure; the tagger degrades those to empty tags.
    """

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger

    @abstractmethod
    async def extract_tags(self, title: str, excerpt: str) -> AITags:
        """Return companies and themes mentioned in a title and body excerpt."""
        raise NotImplementedError

    def _log_llm_response(
        self,
        title: str,
        status: str,
        content: str,
        prompt: str,
    ) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": "llm_tagging_response",
            "status": status,
            "provider": self.cfg.name,
            "model": self.cfg.model,
            "article_title": title,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)
