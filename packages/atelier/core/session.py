"""Studio session: the presentation boundary.

Wraps the orchestrator with the state a front end renders (status, current
result, error, cache-hit flag) and turns each submission into an async stream
of StatusUpdate values. Visible state only ever changes on behalf of the most
recent submission.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import logging
from pathlib import Path
import random
from typing import Any

from atelier.core.api.errors import ErrorKind, SupersededError, error_kind, user_message
from atelier.core.artifacts import safe_export_name, write_image
from atelier.core.caching import InFlightRegistry, MemoryResultCache, NullResultCache, ResultCache
from atelier.core.config.models import AppConfig
from atelier.core.guard import StaleResponseGuard
from atelier.core.history import HistoryStore, JSONFileHistoryStorage
from atelier.core.models import (
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    HistoryEntry,
    ImagePayload,
    StatusUpdate,
)
from atelier.core.orchestrator import GenerationOrchestrator
from atelier.core.providers.base import GenerationBackend
from atelier.core.providers.factory import create_backend
from atelier.core.styles import surprise_subject

logger = logging.getLogger(__name__)


class StudioSession:
    """Presentation-facing coordinator for one user's studio.

    Args:
        orchestrator: Generation orchestrator (owns the guard and history)
    """

    def __init__(self, orchestrator: GenerationOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.status: GenerationStatus = GenerationStatus.IDLE
        self.current: GenerationResult | None = None
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None
        self.cache_hit = False

    @classmethod
    def from_config(
        cls,
        app_config: AppConfig,
        *,
        backend: GenerationBackend | None = None,
    ) -> StudioSession:
        """Wire a session from application config.

        Args:
            app_config: Application configuration
            backend: Optional backend override (defaults to the configured provider)
        """
        if backend is None:
            backend = create_backend(app_config)

        cache: ResultCache
        if app_config.cache.enabled:
            cache = MemoryResultCache(max_entries=app_config.cache.max_entries)
        else:
            cache = NullResultCache()

        storage = JSONFileHistoryStorage(
            app_config.history.storage_dir,
            key=app_config.history.storage_key,
        )
        orchestrator = GenerationOrchestrator(
            backend=backend,
            cache=cache,
            registry=InFlightRegistry(),
            guard=StaleResponseGuard(),
            history=HistoryStore(storage, capacity=app_config.history.capacity),
            retry_policy=app_config.retry.to_policy(),
        )
        return cls(orchestrator)

    @property
    def guard(self) -> StaleResponseGuard:
        return self.orchestrator.guard

    @property
    def history(self) -> HistoryStore:
        return self.orchestrator.history

    async def load_history(self) -> list[HistoryEntry]:
        """Load the persisted gallery (empty on missing or corrupt data)."""
        return await self.history.load()

    async def submit(self, request: GenerationRequest) -> AsyncIterator[StatusUpdate]:
        """Run a request and stream its status transitions.

        Yields generating_idea, then loading_image and loading_inspiration as
        the remote stages start, then exactly one success or error update. A
        cache hit skips the loading stages. A submission superseded by a newer
        one stops yielding and ends without a terminal update.
        """
        token = self.guard.begin_request()
        queue: asyncio.Queue[GenerationStatus | None] = asyncio.Queue()

        self._show_loading(GenerationStatus.GENERATING_IDEA)
        yield StatusUpdate(status=GenerationStatus.GENERATING_IDEA, token=token)

        task = asyncio.ensure_future(
            self.orchestrator.generate(request, token=token, on_status=queue.put_nowait)
        )
        task.add_done_callback(lambda _: queue.put_nowait(None))
        # Consumers may stop iterating early; the outcome must still be retrieved
        task.add_done_callback(_consume_outcome)

        while (stage := await queue.get()) is not None:
            if not self.guard.is_current(token):
                continue
            self._show_loading(stage)
            yield StatusUpdate(status=stage, token=token)

        try:
            result = await task
        except SupersededError:
            logger.debug("Submission %d superseded", token)
            return
        except Exception as e:
            if not self.guard.is_current(token):
                logger.debug("Discarding failure of superseded submission %d: %s", token, e)
                return
            logger.error("Generation failed: %s", e)
            self._show_error(e)
            yield StatusUpdate(
                status=GenerationStatus.ERROR,
                token=token,
                error_kind=error_kind(e).value,
                error_message=self.error,
            )
            return

        if not self.guard.is_current(token):
            logger.debug("Discarding result of superseded submission %d", token)
            return

        self._show_result(result, cache_hit=result.cache_hit)
        yield StatusUpdate(
            status=GenerationStatus.SUCCESS,
            token=token,
            result=result,
            cache_hit=result.cache_hit,
        )

    async def generate(self, request: GenerationRequest) -> StatusUpdate | None:
        """Drain `submit` and return its terminal update (None if superseded)."""
        final: StatusUpdate | None = None
        async for update in self.submit(request):
            if update.status.is_terminal:
                final = update
        return final

    def select(self, entry: HistoryEntry) -> None:
        """Show a history entry as the current result.

        Any submission still running is superseded so it cannot replace the
        selected entry when it finishes.
        """
        self.guard.begin_request()
        self._show_result(entry.result, cache_hit=False)

    def replay_request(
        self,
        entry: HistoryEntry,
        reference: ImagePayload | None = None,
    ) -> GenerationRequest:
        """Request that regenerates a history entry with its original settings.

        A text-to-image entry replays to the same cache key as the original.
        An edited entry needs its reference image supplied again and, like any
        edit, always runs fresh.
        """
        return entry.to_request(reference)

    async def clear_history(self) -> None:
        await self.history.clear()
        logger.info("History cleared")

    def export(self, entry: HistoryEntry, directory: Path | str = ".") -> Path:
        """Write an entry's artifact to `AtelierMuse_<subject>.<ext>` in `directory`."""
        artifact = entry.result.artifact
        path = Path(directory) / safe_export_name(entry.result.subject, artifact.mime_type)
        write_image(artifact, path)
        logger.info("Exported %s", path)
        return path

    @staticmethod
    def surprise_subject(rng: random.Random | None = None) -> str:
        return surprise_subject(rng)

    def _show_loading(self, status: GenerationStatus) -> None:
        self.status = status
        self.error = None
        self.error_kind = None

    def _show_result(self, result: GenerationResult, *, cache_hit: bool) -> None:
        self.status = GenerationStatus.SUCCESS
        self.current = result
        self.cache_hit = cache_hit
        self.error = None
        self.error_kind = None

    def _show_error(self, error: BaseException) -> None:
        self.status = GenerationStatus.ERROR
        self.error = user_message(error)
        self.error_kind = error_kind(error)


def _consume_outcome(task: asyncio.Future[Any]) -> None:
    if not task.cancelled():
        task.exception()
