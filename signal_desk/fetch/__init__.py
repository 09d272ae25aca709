"""
Feed fetching.

This package downloads syndication feed documents and parses
them into FeedEntry records.
"""

from .fetcher import FeedFetcher, parse_feed, strip_html

__all__ = [
    "FeedFetcher",
    "parse_feed",
    "strip_html",
]
