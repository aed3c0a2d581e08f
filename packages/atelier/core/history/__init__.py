"""Persisted generation history."""

from atelier.core.history.storage import (
    DEFAULT_STORAGE_KEY,
    HistoryStorage,
    JSONFileHistoryStorage,
    MemoryHistoryStorage,
)
from atelier.core.history.store import DEFAULT_CAPACITY, HistoryStore

__all__ = [
    "DEFAULT_CAPACITY",
    "DEFAULT_STORAGE_KEY",
    "HistoryStorage",
    "HistoryStore",
    "JSONFileHistoryStorage",
    "MemoryHistoryStorage",
]
