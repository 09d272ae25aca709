"""
Feed fetching and parsing.

Feeds are downloaded with an async httpx client (retry with linear backoff,
configurable timeout and User-Agent) and parsed with feedparser. Every
failure, whether network, HTTP status or malformed document, surfaces as a
FetchError so the caller can record it against the source.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import re
from typing import Any

from bs4 import BeautifulSoup
import feedparser
import httpx

from ..config import FetchConfig
from ..core.errors import FetchError
from ..core.types import FeedEntry


_WHITESPACE_RE = re.compile(r"\s+")


class FeedFetcher:
    """Fetches a feed URL and returns its parsed entries.

    Attributes:
        cfg: Fetch configuration (timeout, retries, User-Agent, proxy handling)
    """

    def __init__(self, cfg: FetchConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self._transport = transport

    async def fetch(self, feed_url: str) -> list[FeedEntry]:
        """Download and parse one feed document.

        Args:
            feed_url: URL of the feed document

        Returns:
            Parsed entries, possibly empty for a valid but empty feed

        Raises:
            FetchError: On network failure, timeout, non-success status or a
                document feedparser cannot make sense of
        """
        body = await self._download(feed_url)
        return parse_feed(body)

    async def _download(self, feed_url: str) -> bytes:
        headers = {
            "User-Agent": self.cfg.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
        }
        last_error: str | None = None

        for attempt in range(self.cfg.retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.cfg.timeout_seconds,
                    headers=headers,
                    follow_redirects=True,
                    trust_env=self.cfg.trust_env,
                    transport=self._transport,
                ) as client:
                    resp = await client.get(feed_url)
                    resp.raise_for_status()
                    return resp.content
            except httpx.HTTPStatusError as exc:
                last_error = f"Status code {exc.response.status_code}"
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
            if attempt < self.cfg.retries:
                # Linear backoff: 0.5s, 1.0s, 1.5s...
                await asyncio.sleep(0.5 * (attempt + 1))

        raise FetchError(last_error or "Unknown fetch error")


def parse_feed(content: bytes | str) -> list[FeedEntry]:
    """Parse an RSS/Atom document into FeedEntry objects.

    A document that feedparser flags as malformed is only rejected when it
    also yielded no entries; feeds with minor well-formedness problems are
    still accepted.

    Raises:
        FetchError: If the document is malformed and contains no entries
    """
    parsed = feedparser.parse(content)
    if parsed.get("bozo") and not parsed.entries:
        reason = parsed.get("bozo_exception")
        raise FetchError(f"Malformed feed document: {reason}")
    if not parsed.entries and not parsed.get("version"):
        raise FetchError("Not a feed document")
    return [_to_entry(entry) for entry in parsed.entries]


def _to_entry(entry: Any) -> FeedEntry:
    content = _raw_content(entry)
    author_detail = entry.get("author_detail") or {}
    return FeedEntry(
        guid=_clean(entry.get("id")),
        link=_clean(entry.get("link")),
        title=_clean(entry.get("title")),
        content_snippet=strip_html(content) if content else None,
        content=content,
        creator=_clean(entry.get("author")),
        author=_clean(author_detail.get("name")),
        iso_date=_iso_date(entry),
    )


def _raw_content(entry: Any) -> str | None:
    blocks = entry.get("content") or []
    for block in blocks:
        value = block.get("value")
        if value:
            return value
    return entry.get("summary") or None


def _iso_date(entry: Any) -> str | None:
    struct = entry.get("published_parsed") or entry.get("updated_parsed")
    if not struct:
        return None
    return datetime(*struct[:6], tzinfo=timezone.utc).isoformat()


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def strip_html(html: str) -> str | None:
    """Reduce an HTML fragment to whitespace-collapsed plain text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = _WHITESPACE_RE.sub(" ", soup.get_text(separator=" ")).strip()
    return text or None
