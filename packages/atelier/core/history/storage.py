"""Durable storage for the history document.

The whole gallery is stored as one JSON document under a single key
(`current_history` by default). Storage failures never break a generation:
loads fall back to an empty gallery and failed saves are logged.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

import aiofiles  # type: ignore[import-untyped]

from atelier.core.models import HistoryDocument, HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "current_history"


class HistoryStorage(Protocol):
    """Key-scoped persistence for the history document."""

    async def load(self) -> list[HistoryEntry]:
        """Return persisted entries (newest first); empty on missing or corrupt data."""
        ...

    async def save(self, entries: list[HistoryEntry]) -> None:
        """Replace the persisted document with `entries`."""
        ...

    async def clear(self) -> None:
        """Remove the persisted document."""
        ...


class JSONFileHistoryStorage:
    """Stores the history document at `<root_dir>/<key>.json`.

    Writes go to a temporary sibling and are swapped in with `os.replace`, so
    a crash mid-write leaves the previous document intact.
    """

    def __init__(self, root_dir: Path | str, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.root_dir = Path(root_dir)
        self.key = key

    @property
    def path(self) -> Path:
        return self.root_dir / f"{self.key}.json"

    async def load(self) -> list[HistoryEntry]:
        if not self.path.exists():
            return []
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                raw = await f.read()
            document = HistoryDocument.model_validate_json(raw)
        except Exception:
            logger.warning("Failed to load history from %s, starting empty", self.path, exc_info=True)
            return []
        logger.debug("Loaded %d history entries from %s", len(document.entries), self.path)
        return list(document.entries)

    async def save(self, entries: list[HistoryEntry]) -> None:
        document = HistoryDocument(entries=list(entries))
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(document.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except OSError:
            logger.error("Failed to save history to %s", self.path, exc_info=True)
            return
        logger.debug("Saved %d history entries to %s", len(entries), self.path)

    async def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.error("Failed to clear history at %s", self.path, exc_info=True)


class MemoryHistoryStorage:
    """Process-local storage (tests and ephemeral sessions)."""

    def __init__(self, entries: list[HistoryEntry] | None = None) -> None:
        self._entries: list[HistoryEntry] = list(entries or [])
        self.save_count = 0

    async def load(self) -> list[HistoryEntry]:
        return list(self._entries)

    async def save(self, entries: list[HistoryEntry]) -> None:
        self._entries = list(entries)
        self.save_count += 1

    async def clear(self) -> None:
        self._entries = []
