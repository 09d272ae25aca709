"""
Rule-based tagging.

Category, platform and theme labels come from fixed keyword tables matched
case-insensitively against "title body". Keywords are anchored on word
boundaries so short keywords ("ar", "vr", "pc", "ai") do not fire inside
words like "year", "every" or "said". Company labels are never produced here;
they come from the AI pass.
"""

from __future__ import annotations

import re

from ..core.types import TagBundle


PLATFORM_RULES: dict[str, list[str]] = {
    "mobile": [
        "mobile", "mobile game", "mobile gaming", "ios", "android",
        "iphone", "ipad", "app store", "google play", "smartphone",
        "mobile-first",
    ],
    "console": [
        "console", "playstation", "ps5", "ps4", "ps3",
        "xbox", "xbox series", "nintendo", "switch", "switch 2",
        "game boy", "handheld",
    ],
    "pc": [
        "pc gaming", "pc game", "steam", "epic games store",
        "gog", "windows gaming", "pc and console", "pc",
    ],
    "vr": [
        "virtual reality", "meta quest", "quest 2", "quest 3",
        "quest pro", "psvr", "vision pro", "mixed reality headset", "vr",
    ],
    "web": [
        "browser game", "browser-based", "html5", "webgl",
        "web game", "web gaming",
    ],
}

THEME_RULES: dict[str, list[str]] = {
    "ai": [
        "artificial intelligence", "machine learning", "generative ai",
        "llm", "chatgpt", "copilot", "ai-powered", "ai-first",
        "ai agent", "ai tool", "ai model", "ai",
    ],
    "ugc": [
        "ugc", "user-generated content", "user generated content",
        "roblox", "fortnite creative", "modding community",
        "mod support", "creator economy", "user-generated",
    ],
    "live-services": [
        "live service", "live-service", "live services", "live ops",
        "games as a service", "gaas", "battle pass", "season pass",
        "live game", "recurring revenue",
    ],
    "cloud-gaming": [
        "cloud gaming", "game streaming", "geforce now",
        "xbox cloud gaming", "luna", "cloud-based gaming",
    ],
    "vr-ar": [
        "virtual reality", "augmented reality", "mixed reality",
        "metaverse", "spatial computing", "xr", "vr", "ar",
    ],
    "blockchain": [
        "blockchain", "nft", "web3", "crypto gaming",
        "play-to-earn", "play to earn", "p2e", "token", "on-chain",
    ],
    "esports": [
        "esports", "e-sports", "esport", "competitive gaming",
        "tournament", "pro league", "competitive scene",
    ],
    "indie": [
        "indie game", "indie developer", "indie studio",
        "independent developer", "solo dev", "small studio",
        "indie hit", "indie dev",
    ],
}

SOURCE_TYPE_TO_CATEGORY: dict[str, str] = {
    "newsletter": "analysis",
    "news": "article",
    "analysis": "analysis",
    "podcast": "podcast",
}

DEFAULT_CATEGORY = "article"

CATEGORY_RULES: dict[str, list[str]] = {
    "earnings": [
        "earnings", "revenue report", "quarterly results", "quarterly report",
        "fiscal year", "financial results", "operating profit",
        "operating income", "operating loss", "net income",
        "year-on-year", "year-over-year", "yoy",
    ],
    "m-and-a": [
        "acquisition", "acquired", "acquires", "buys", "merger",
        "buyout", "takeover", "purchase agreement",
    ],
    "fundraising": [
        "funding round", "fundraising", "series a", "series b",
        "series c", "series d", "seed round", "seed funding",
        "investment round", "venture capital",
        "raised $", "raises $", "secures $",
    ],
    "podcast": [
        "podcast", "episode",
    ],
    "opinion": [
        "opinion", "editorial",
    ],
}


def _compile(keywords: list[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(kw) for kw in keywords)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


def _compile_table(table: dict[str, list[str]]) -> dict[str, re.Pattern[str]]:
    return {label: _compile(keywords) for label, keywords in table.items()}


_PLATFORM_PATTERNS = _compile_table(PLATFORM_RULES)
_THEME_PATTERNS = _compile_table(THEME_RULES)
_CATEGORY_PATTERNS = _compile_table(CATEGORY_RULES)


def matches_any(text: str, keywords: list[str]) -> bool:
    """Check if any keyword occurs in text as a whole word or phrase."""
    return bool(_compile(keywords).search(text))


def base_category(source_type: str | None) -> str:
    return SOURCE_TYPE_TO_CATEGORY.get(source_type or "", DEFAULT_CATEGORY)


def tag_rules(title: str, body: str | None, source_type: str | None) -> TagBundle:
    """Tag an item from keyword rules alone.

    Deterministic and side-effect free. Categories are additive: the base
    category derived from the source type is always present, and every
    matching content category is added to it.

    Args:
        title: Item headline
        body: Optional body text
        source_type: Owning source's type label

    Returns:
        TagBundle with category, platform and theme populated and company empty
    """
    text = f"{title} {body or ''}"

    categories = [base_category(source_type)]
    categories.extend(_matching(_CATEGORY_PATTERNS, text))

    return TagBundle(
        category=categories,
        platform=_matching(_PLATFORM_PATTERNS, text),
        theme=_matching(_THEME_PATTERNS, text),
        company=[],
    )


def _matching(patterns: dict[str, re.Pattern[str]], text: str) -> list[str]:
    return [label for label, pattern in patterns.items() if pattern.search(text)]
