"""AI enrichment providers for company and theme tagging."""

from .parsing import parse_tag_response, strip_code_fences
from .prompts import VALID_AI_THEMES, build_tagging_prompt
from .providers.base import TaggingProvider
from .providers.factory import available_providers, create_provider
from .providers.gemini import GeminiProvider
from .providers.openai_compatible import OpenAICompatibleProvider

__all__ = [
    "TaggingProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "create_provider",
    "available_providers",
    "build_tagging_prompt",
    "parse_tag_response",
    "strip_code_fences",
    "VALID_AI_THEMES",
]
