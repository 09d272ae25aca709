"""Exception types raised across Signal Desk."""

from __future__ import annotations


class SignalDeskError(Exception):
    """Base class for all Signal Desk errors."""


class FetchError(SignalDeskError):
    """Feed could not be fetched or parsed (network, timeout, malformed document)."""


class StoreError(SignalDeskError):
    """A store read or write failed."""


class SourceNotFoundError(StoreError):
    """A targeted ingestion named a source id the store does not know."""


class TaggingError(SignalDeskError):
    """AI enrichment call or response parsing failed. Always non-fatal."""


class ConfigurationError(SignalDeskError):
    """Configuration is missing or invalid."""
