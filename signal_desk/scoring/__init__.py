"""Importance scoring for items and story clusters."""

from .importance import (
    TIER_CRITICAL,
    TIER_HIGH,
    TIER_LOW,
    TIER_MEDIUM,
    get_cluster_score_breakdown,
    importance_tier,
    item_factors,
    score_cluster,
    score_item,
)

__all__ = [
    "TIER_CRITICAL",
    "TIER_HIGH",
    "TIER_LOW",
    "TIER_MEDIUM",
    "get_cluster_score_breakdown",
    "importance_tier",
    "item_factors",
    "score_cluster",
    "score_item",
]
