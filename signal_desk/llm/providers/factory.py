"""Choose an AI tagging backend from config.

Backends are keyed by a canonical name; aliases map the spellings people
actually put in YAML onto those names. ``openai`` is the default because any
OpenAI-compatible endpoint (OpenAI, OpenRouter, a local server) works through
``base_url``.
"""

from __future__ import annotations

import logging

from ...config import LoggingConfig, ProviderConfig, get_api_key
from ...core.errors import ConfigurationError
from .base import TaggingProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


_BACKENDS: dict[str, type[TaggingProvider]] = {
    "openai": OpenAICompatibleProvider,
    "gemini": GeminiProvider,
}

_ALIASES = {
    "openai_compatible": "openai",
    "openai-compatible": "openai",
    "google": "gemini",
}


def available_providers() -> list[str]:
    """Every accepted provider name, aliases included."""
    return sorted([*_BACKENDS, *_ALIASES])


def create_provider(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
) -> TaggingProvider | None:
    """Build the configured provider, or None when no API key is available.

    Without a credential AI tagging is skipped entirely and the rule tagger
    works alone, so a missing key is not an error.

    Raises:
        ConfigurationError: If the provider name is not recognised
    """
    requested = provider_cfg.name.strip().lower()
    backend = _BACKENDS.get(_ALIASES.get(requested, requested))
    if backend is None:
        raise ConfigurationError(
            f"Unsupported provider: {provider_cfg.name}. Supported: {', '.join(available_providers())}"
        )

    api_key = get_api_key(provider_cfg)
    if not api_key:
        return None
    return backend(provider_cfg, api_key, log_cfg, llm_logger)
