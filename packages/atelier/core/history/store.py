"""Bounded, newest-first history of completed generations."""

from __future__ import annotations

import asyncio
import logging

from atelier.core.history.storage import HistoryStorage
from atelier.core.models import HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 15


class HistoryStore:
    """Ordered gallery of at most `capacity` entries, newest first.

    Every mutation rewrites the whole document through the storage backend.
    Mutations are serialized with a lock so concurrent completions cannot
    interleave their read-modify-write cycles.

    Args:
        storage: Persistence backend
        capacity: Maximum number of entries kept
    """

    def __init__(self, storage: HistoryStorage, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be >= 1")
        self._storage = storage
        self._capacity = capacity
        self._entries: list[HistoryEntry] = []
        self._loaded = False
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> list[HistoryEntry]:
        """Snapshot of the current entries (newest first)."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self) -> list[HistoryEntry]:
        """Load persisted entries, trimming to capacity and dropping duplicates."""
        async with self._lock:
            await self._ensure_loaded()
            return list(self._entries)

    async def append(self, entry: HistoryEntry) -> list[HistoryEntry]:
        """Insert `entry` at the front and persist.

        An entry whose artifact is already present replaces the older copy
        rather than adding a duplicate.

        Returns:
            The updated entry list
        """
        async with self._lock:
            await self._ensure_loaded()
            remaining = [e for e in self._entries if e.artifact_id != entry.artifact_id]
            self._entries = [entry, *remaining][: self._capacity]
            await self._storage.save(self._entries)
            logger.debug("History now holds %d entries", len(self._entries))
            return list(self._entries)

    async def clear(self) -> None:
        async with self._lock:
            self._entries = []
            self._loaded = True
            await self._storage.clear()

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        loaded = await self._storage.load()
        seen: set[str] = set()
        entries: list[HistoryEntry] = []
        for entry in loaded:
            if entry.artifact_id in seen:
                continue
            seen.add(entry.artifact_id)
            entries.append(entry)
        self._entries = entries[: self._capacity]
        self._loaded = True
