"""
Hybrid tagging: deterministic keyword rules plus optional AI enrichment.

Merge policy:
- category, platform: rules only
- theme: union of rule themes and AI themes
- company: AI only, exact-string deduplication
"""

from __future__ import annotations

import logging

from ..core.types import TAG_DIMENSIONS, AITags, NormalizedTag, TagBundle
from ..llm.providers.base import TaggingProvider
from ..logging_utils import log_warning
from .rules import tag_rules


DEFAULT_EXCERPT_CHARS = 500


class HybridTagger:
    """Tags items with keyword rules and, when configured, an AI provider.

    Attributes:
        provider: AI tagging provider, or None when no credential is configured
        excerpt_chars: Leading body characters sent to the provider
    """

    def __init__(
        self,
        provider: TaggingProvider | None = None,
        excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
        logger: logging.Logger | None = None,
    ):
        self.provider = provider
        self.excerpt_chars = excerpt_chars
        self.logger = logger or logging.getLogger("signal_desk.tagging")

    def tag_rules(self, title: str, body: str | None, source_type: str | None) -> TagBundle:
        return tag_rules(title, body, source_type)

    async def tag_ai(self, title: str, body: str | None) -> AITags:
        """Ask the AI provider for companies and themes.

        Returns empty tags without any network call when no provider is
        configured. Any provider failure is logged and degrades to empty
        tags so the rule tags still get written.
        """
        if self.provider is None:
            return AITags()
        excerpt = (body or "")[: self.excerpt_chars]
        try:
            return await self.provider.extract_tags(title, excerpt)
        except Exception as exc:  # noqa: BLE001
            log_warning(
                self.logger,
                "AI tagging failed",
                event="ai_tagging_failed",
                title=title,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return AITags()

    async def tag(self, title: str, body: str | None, source_type: str | None) -> TagBundle:
        """Run rules, then AI enrichment, and merge the two."""
        rules = self.tag_rules(title, body, source_type)
        ai = await self.tag_ai(title, body)
        return merge_tags(rules, ai)


def merge_tags(rules: TagBundle, ai: AITags) -> TagBundle:
    return TagBundle(
        category=list(rules.category),
        platform=list(rules.platform),
        theme=[*rules.theme, *ai.theme],
        company=list(ai.company),
    )


def normalized_tags(item_id: str, bundle: TagBundle) -> list[NormalizedTag]:
    """Expand a tag bundle into (item, dimension, value) rows."""
    rows: list[NormalizedTag] = []
    for dimension in TAG_DIMENSIONS:
        for value in getattr(bundle, dimension):
            rows.append(NormalizedTag(item_id=item_id, dimension=dimension, value=value))
    return rows
