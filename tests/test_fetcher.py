"""Tests for feed download and parsing."""

import asyncio

import httpx
import pytest

from signal_desk.config import FetchConfig
from signal_desk.core.errors import FetchError
from signal_desk.fetch import FeedFetcher, parse_feed, strip_html


RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Example Games News</title>
    <link>https://news.example.com</link>
    <item>
      <title>EA acquires mobile studio for $500M</title>
      <link>https://news.example.com/ea-mobile</link>
      <guid>ea-mobile-2026</guid>
      <description>&lt;p&gt;Electronic Arts has &lt;b&gt;acquired&lt;/b&gt; a studio.&lt;/p&gt;</description>
      <dc:creator>Jo Reporter</dc:creator>
      <pubDate>Mon, 02 Mar 2026 12:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Untimed item</title>
      <link>https://news.example.com/untimed</link>
    </item>
  </channel>
</rss>
"""

ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Analysis</title>
  <id>urn:example:feed</id>
  <updated>2026-03-02T10:00:00Z</updated>
  <entry>
    <title>Why live services stall</title>
    <id>urn:example:entry:1</id>
    <link href="https://analysis.example.com/live-services"/>
    <updated>2026-03-02T10:00:00Z</updated>
    <author><name>Sam Analyst</name></author>
    <content type="html">&lt;p&gt;Long read&lt;/p&gt;</content>
  </entry>
</feed>
"""

EMPTY_RSS = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Quiet</title><link>https://q.example.com</link></channel></rss>
"""


def _fetcher(handler, retries=0):
    return FeedFetcher(FetchConfig(retries=retries), transport=httpx.MockTransport(handler))


def test_parse_rss_entries():
    entries = parse_feed(RSS)
    assert len(entries) == 2

    first = entries[0]
    assert first.guid == "ea-mobile-2026"
    assert first.link == "https://news.example.com/ea-mobile"
    assert first.title == "EA acquires mobile studio for $500M"
    assert first.content_snippet == "Electronic Arts has acquired a studio."
    assert "<b>acquired</b>" in first.content
    assert first.creator == "Jo Reporter"
    assert first.iso_date == "2026-03-02T12:00:00+00:00"

    second = entries[1]
    assert second.guid is None
    assert second.iso_date is None
    assert second.content is None


def test_parse_atom_entries():
    entries = parse_feed(ATOM)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.guid == "urn:example:entry:1"
    assert entry.link == "https://analysis.example.com/live-services"
    assert entry.author == "Sam Analyst"
    assert entry.content_snippet == "Long read"
    assert entry.iso_date == "2026-03-02T10:00:00+00:00"


def test_parse_empty_feed_returns_no_entries():
    assert parse_feed(EMPTY_RSS) == []


def test_parse_rejects_non_feed_document():
    with pytest.raises(FetchError):
        parse_feed(b"<html><body>Not a feed</body></html>")


def test_strip_html_collapses_whitespace():
    assert strip_html("<p>Hello\n\n  <i>world</i></p><script>x()</script>") == "Hello world"
    assert strip_html("<p> </p>") is None


def test_fetch_sends_user_agent_and_parses():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers["User-Agent"]
        return httpx.Response(200, content=RSS)

    entries = asyncio.run(_fetcher(handler).fetch("https://news.example.com/feed"))
    assert len(entries) == 2
    assert seen["ua"] == "SignalDesk/1.0"


def test_fetch_raises_on_http_status():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(FetchError, match="Status code 404"):
        asyncio.run(_fetcher(handler).fetch("https://news.example.com/feed"))


def test_fetch_raises_on_network_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(FetchError, match="ConnectTimeout"):
        asyncio.run(_fetcher(handler).fetch("https://news.example.com/feed"))


def test_fetch_retries_before_succeeding(monkeypatch):
    calls = []

    async def no_sleep(_):
        return None

    monkeypatch.setattr("signal_desk.fetch.fetcher.asyncio.sleep", no_sleep)

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, content=RSS)

    entries = asyncio.run(_fetcher(handler, retries=1).fetch("https://news.example.com/feed"))
    assert len(calls) == 2
    assert len(entries) == 2
