"""In-flight operation registry for request coalescing.

All registry mutations happen synchronously on the event loop thread with no
await between lookup and insert, so two callers can never both create an
operation for the same key.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Any, Generic, TypeVar

from atelier.core.models import GenerationStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

StatusListener = Callable[[GenerationStatus], None]


class InFlightOperation(Generic[T]):
    """One running operation shared by every caller that joined it.

    Tracks the request tokens of its callers (for staleness checks) and the
    status listeners to notify at stage boundaries.
    """

    def __init__(self, key: str | None) -> None:
        self.key = key
        self.tokens: list[int] = []
        self._listeners: list[StatusListener] = []
        self.stage: GenerationStatus | None = None
        self._task: asyncio.Task[T] | None = None

    @property
    def task(self) -> asyncio.Task[T]:
        if self._task is None:
            raise RuntimeError("Operation has not been started")
        return self._task

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def join(self, token: int, listener: StatusListener | None = None) -> None:
        """Register a caller's token (and optional status listener).

        A listener joining mid-flight is told the current stage at once.
        """
        self.tokens.append(token)
        if listener is not None:
            self._listeners.append(listener)
            if self.stage is not None:
                self._send(listener, self.stage)

    def wanted_by(self, is_current: Callable[[int], bool]) -> bool:
        """True while at least one joined request is still current."""
        return any(is_current(token) for token in self.tokens)

    def notify(self, status: GenerationStatus) -> None:
        """Record a stage transition and forward it to every listener."""
        self.stage = status
        for listener in list(self._listeners):
            self._send(listener, status)

    def _send(self, listener: StatusListener, status: GenerationStatus) -> None:
        try:
            listener(status)
        except Exception:
            logger.warning("Status listener failed for %s", status.value, exc_info=True)

    async def wait(self) -> T:
        """Await the shared result without letting one caller cancel it for all."""
        return await asyncio.shield(self.task)

    def _start(self, coro: Awaitable[T]) -> None:
        self._task = asyncio.ensure_future(coro)
        # A failure nobody awaited (all callers cancelled) must not warn at GC.
        self._task.add_done_callback(_consume_exception)


def _consume_exception(task: asyncio.Task[Any]) -> None:
    if not task.cancelled():
        task.exception()


class InFlightRegistry(Generic[T]):
    """Mapping from key to the operation currently computing it."""

    def __init__(self) -> None:
        self._operations: dict[str, InFlightOperation[T]] = {}

    def get_or_create(
        self,
        key: str,
        factory: Callable[[InFlightOperation[T]], Awaitable[T]],
    ) -> tuple[InFlightOperation[T], bool]:
        """Return the operation for `key`, starting one if none is running.

        The entry is removed as soon as the operation finishes, successfully
        or not, so the next call for the key starts fresh.

        Args:
            key: Dedup key.
            factory: Builds the operation's coroutine; receives the operation.

        Returns:
            (operation, created) where `created` is False for a join.
        """
        existing = self._operations.get(key)
        if existing is not None:
            logger.debug("Joining in-flight operation for %s", key)
            return existing, False

        operation: InFlightOperation[T] = InFlightOperation(key)
        self._operations[key] = operation
        operation._start(self._drive(key, operation, factory))
        return operation, True

    def start_unique(
        self,
        factory: Callable[[InFlightOperation[T]], Awaitable[T]],
    ) -> InFlightOperation[T]:
        """Start an operation that is never shared or registered."""
        operation: InFlightOperation[T] = InFlightOperation(None)
        operation._start(factory(operation))
        return operation

    async def _drive(
        self,
        key: str,
        operation: InFlightOperation[T],
        factory: Callable[[InFlightOperation[T]], Awaitable[T]],
    ) -> T:
        try:
            return await factory(operation)
        finally:
            if self._operations.get(key) is operation:
                del self._operations[key]

    def __contains__(self, key: object) -> bool:
        return key in self._operations

    def __len__(self) -> int:
        return len(self._operations)
