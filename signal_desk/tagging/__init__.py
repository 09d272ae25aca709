"""Hybrid tagging: keyword rules plus optional AI enrichment."""

from .rules import (
    CATEGORY_RULES,
    PLATFORM_RULES,
    SOURCE_TYPE_TO_CATEGORY,
    THEME_RULES,
    base_category,
    matches_any,
    tag_rules,
)
from .tagger import HybridTagger, merge_tags, normalized_tags

__all__ = [
    "CATEGORY_RULES",
    "PLATFORM_RULES",
    "SOURCE_TYPE_TO_CATEGORY",
    "THEME_RULES",
    "HybridTagger",
    "base_category",
    "matches_any",
    "merge_tags",
    "normalized_tags",
    "tag_rules",
]
