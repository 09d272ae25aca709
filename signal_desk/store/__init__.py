"""
Persistence collaborators.

The coordinator depends only on the abstract interfaces in base;
MemoryStore and JsonFileStore are the bundled implementations.
"""

from .base import ItemStore, LogStore, SourceStore, Store
from .json_store import JsonFileStore
from .memory import MemoryStore

__all__ = [
    "ItemStore",
    "SourceStore",
    "LogStore",
    "Store",
    "MemoryStore",
    "JsonFileStore",
]
