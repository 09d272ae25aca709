"""Story clustering over title similarity."""

from .clustering import cluster_items, order_for_clustering
from .tokenizer import COMPANY_ALIASES, STOP_WORDS, extract_words, jaccard

__all__ = [
    "COMPANY_ALIASES",
    "STOP_WORDS",
    "cluster_items",
    "extract_words",
    "jaccard",
    "order_for_clustering",
]
