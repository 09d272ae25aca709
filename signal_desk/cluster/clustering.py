"""
Greedy story clustering.

Items must arrive newest first (see order_for_clustering). Each unassigned
item seeds a cluster and absorbs every later unassigned item whose title is
similar enough to the seed's title and whose publication time lies within
the window around the seed's. Similarity is only ever checked against the
seed, so two related items of one cluster need not be similar to each other.
"""

from __future__ import annotations

from ..core.types import Item, StoryCluster
from .tokenizer import extract_words, jaccard


DEFAULT_THRESHOLD = 0.3
DEFAULT_WINDOW_HOURS = 72
MAX_CLUSTER_SIZE = 10


def order_for_clustering(items: list[Item]) -> list[Item]:
    """Return items newest first, undated items last, ties broken by id.

    This is the ordering cluster_items expects; it is deterministic for a
    given item set regardless of the input order.
    """
    ordered = sorted(items, key=lambda item: item.id)
    ordered.sort(key=_recency_key)
    return ordered


def cluster_items(
    items: list[Item],
    threshold: float = DEFAULT_THRESHOLD,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    max_cluster_size: int = MAX_CLUSTER_SIZE,
) -> list[StoryCluster]:
    """Group items that report the same story.

    Args:
        items: Items sorted newest first; the order is not changed here and
            decides which item leads each cluster
        threshold: Minimum Jaccard similarity between seed and candidate titles
        window_hours: Maximum publication time difference to the seed
            (missing timestamps count as the epoch)
        max_cluster_size: Hard cap on cluster members

    Returns:
        Clusters in seed order. Every input item belongs to exactly one cluster.
    """
    window_seconds = window_hours * 3600
    word_sets = [extract_words(item.title) for item in items]
    timestamps = [_timestamp(item) for item in items]

    assigned: set[int] = set()
    clusters: list[StoryCluster] = []

    for i in range(len(items)):
        if i in assigned:
            continue

        members = [i]
        assigned.add(i)

        for j in range(i + 1, len(items)):
            if j in assigned:
                continue
            if len(members) >= max_cluster_size:
                break
            if abs(timestamps[i] - timestamps[j]) > window_seconds:
                continue
            if jaccard(word_sets[i], word_sets[j]) >= threshold:
                members.append(j)
                assigned.add(j)

        clusters.append(_build_cluster([items[idx] for idx in members]))

    return clusters


def _build_cluster(members: list[Item]) -> StoryCluster:
    source_names: list[str] = []
    for item in members:
        name = item.source.name if item.source is not None else None
        if name and name not in source_names:
            source_names.append(name)

    lead = members[0]
    return StoryCluster(
        id=lead.id,
        lead=lead,
        related=members[1:],
        source_names=source_names,
        is_multi_source=len(source_names) > 1,
    )


def _timestamp(item: Item) -> float:
    if item.published_at is None:
        return 0.0
    return item.published_at.timestamp()


def _recency_key(item: Item) -> tuple[int, float]:
    if item.published_at is None:
        return (1, 0.0)
    return (0, -item.published_at.timestamp())
