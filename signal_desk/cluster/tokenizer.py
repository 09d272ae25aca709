"""
Title tokenization for story similarity.

Titles are reduced to a set of significant words: lowercased, stripped of
punctuation (except "$" and "%"), with single characters and stop words
dropped and company name fragments collapsed onto one canonical name.
"""

from __future__ import annotations

import re


STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "shall", "can", "need", "must",
    "it", "its", "this", "that", "these", "those", "i", "we", "you", "he",
    "she", "they", "me", "him", "her", "us", "them", "my", "your", "his",
    "our", "their", "what", "which", "who", "whom", "how", "when", "where",
    "why", "if", "then", "than", "so", "no", "not", "only", "very", "just",
    "about", "up", "out", "into", "over", "after", "before", "between",
    "under", "again", "more", "most", "some", "such", "also", "back",
    "new", "now", "here", "there", "all", "any", "both", "each", "few",
    "many", "much", "own", "other", "as", "says", "said", "according",
    "report", "reports", "news", "via", "per", "amid", "despite",
})

COMPANY_ALIASES: dict[str, str] = {
    "ea": "electronic arts",
    "electronic": "electronic arts",
    "arts": "electronic arts",
    "ms": "microsoft",
    "msft": "microsoft",
    "activision": "activision blizzard",
    "blizzard": "activision blizzard",
    "riot": "riot games",
    "epic": "epic games",
    "cd": "cd projekt",
    "projekt": "cd projekt",
    "cdpr": "cd projekt",
    "meta": "meta platforms",
    "facebook": "meta platforms",
    "timi": "timi studio",
    "netease": "netease games",
    "square": "square enix",
    "enix": "square enix",
    "bio": "bioware",
    "bioware": "bioware",
    "ubi": "ubisoft",
}

_NON_TOKEN_RE = re.compile(r"[^a-z0-9\s$%]")


def extract_words(title: str) -> set[str]:
    """Return the significant, alias-normalized words of a title."""
    words = _NON_TOKEN_RE.sub(" ", (title or "").lower()).split()
    normalized: set[str] = set()
    for word in words:
        if len(word) <= 1 or word in STOP_WORDS:
            continue
        normalized.add(COMPANY_ALIASES.get(word, word))
    return normalized


def jaccard(a: set[str], b: set[str]) -> float:
    """Intersection over union; 0.0 when both sets are empty."""
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    if union == 0:
        return 0.0
    return intersection / union
