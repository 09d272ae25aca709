"""OpenAI-compatible chat-completions provider for AI tagging."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.errors import ConfigurationError, TaggingError
from ...core.types import AITags
from ..parsing import parse_tag_response
from ..prompts import build_tagging_prompt
from .base import TaggingProvider


DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatibleProvider(TaggingProvider):
    """Tags items through any endpoint speaking the /chat/completions protocol."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ConfigurationError("Missing API key for OpenAI-compatible provider")
        super().__init__(cfg, api_key, log_cfg, llm_logger)
        self._transport = transport

    async def extract_tags(self, title: str, excerpt: str) -> AITags:
        system, user = build_tagging_prompt(title, excerpt)
        payload = {
            "model": self.cfg.model,
            "temperature": 0,
            "max_tokens": self.cfg.max_tokens,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        try:
            data = await self._post(payload)
        except (httpx.HTTPError, ValueError) as exc:
            self._log_llm_response(title, "provider_error", str(exc), user)
            raise TaggingError(f"{type(exc).__name__}: {exc}") from exc

        content = _extract_text(data)
        try:
            tags = parse_tag_response(content)
        except ValueError as exc:
            self._log_llm_response(title, "parse_error", content, user)
            raise TaggingError(f"Unparseable tagging response: {exc}") from exc

        self._log_llm_response(title, "ok", content, user)
        return tags

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        base_url = (self.cfg.base_url or DEFAULT_BASE_URL).rstrip("/")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            resp = await client.post(f"{base_url}/chat/completions", headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""
