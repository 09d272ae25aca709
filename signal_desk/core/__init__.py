"""
Core domain models and error types.

This package contains data types that are shared by every
pipeline stage.
"""

from .errors import (
    ConfigurationError,
    FetchError,
    SignalDeskError,
    SourceNotFoundError,
    StoreError,
    TaggingError,
)
from .result import Result
from .types import (
    TAG_DIMENSIONS,
    AITags,
    FeedEntry,
    IngestionLogEntry,
    IngestResult,
    Item,
    NewItem,
    NormalizedTag,
    ScoreBreakdown,
    ScoreFactor,
    Source,
    SourceHealthUpdate,
    SourceRef,
    StoryCluster,
    TagBundle,
)

__all__ = [
    "TAG_DIMENSIONS",
    "AITags",
    "ConfigurationError",
    "FeedEntry",
    "FetchError",
    "IngestResult",
    "IngestionLogEntry",
    "Item",
    "NewItem",
    "NormalizedTag",
    "Result",
    "ScoreBreakdown",
    "ScoreFactor",
    "SignalDeskError",
    "Source",
    "SourceHealthUpdate",
    "SourceNotFoundError",
    "SourceRef",
    "StoreError",
    "StoryCluster",
    "TagBundle",
    "TaggingError",
]
