"""Stale-response guard.

Every user-initiated generation takes a token from a monotonically
increasing counter before doing any async work. After each suspension point
the holder checks whether its token is still the latest; if not, its result
is dropped without touching cache, history, or visible state.
"""

from __future__ import annotations

import itertools
import threading


class StaleResponseGuard:
    """Issues request tokens and answers "is this still the latest?"."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest = 0
        self._lock = threading.Lock()

    def begin_request(self) -> int:
        """Issue a fresh token, superseding every earlier one."""
        with self._lock:
            self._latest = next(self._counter)
            return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    @property
    def latest(self) -> int:
        """Most recently issued token (0 before the first request)."""
        return self._latest
