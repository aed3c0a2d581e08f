"""Generation orchestrator.

Composes the cache, in-flight registry, retry policy, stale-response guard
and history store around the three remote operations:

    cache probe -> join/start operation -> image (retried) -> staleness check
    -> commentary (retried) -> staleness check -> cache put + history append

Nothing is written to the cache or history until both stages succeed, so a
failed or superseded operation leaves every shared structure untouched.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

from atelier.core.api.errors import SupersededError
from atelier.core.api.retry import RetryPolicy, with_retry
from atelier.core.caching import InFlightOperation, InFlightRegistry, ResultCache, request_key
from atelier.core.guard import StaleResponseGuard
from atelier.core.history import HistoryStore
from atelier.core.models import (
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    HistoryEntry,
    ImagePayload,
)
from atelier.core.providers.base import GenerationBackend
from atelier.core.styles import build_edit_prompt, build_image_prompt

logger = logging.getLogger(__name__)

StatusCallback = Callable[[GenerationStatus], None]


class GenerationOrchestrator:
    """Runs one generation request end to end.

    Args:
        backend: Remote generation operations
        cache: Session result cache
        registry: In-flight registry used to coalesce identical requests
        guard: Stale-response guard issuing request tokens
        history: Persisted history store
        retry_policy: Retry policy applied to each remote call
        sleep: Backoff sleep (injectable for tests)
    """

    def __init__(
        self,
        backend: GenerationBackend,
        cache: ResultCache,
        registry: InFlightRegistry[GenerationResult],
        guard: StaleResponseGuard,
        history: HistoryStore,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.registry = registry
        self.guard = guard
        self.history = history
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    async def generate(
        self,
        request: GenerationRequest,
        *,
        token: int | None = None,
        on_status: StatusCallback | None = None,
    ) -> GenerationResult:
        """Produce a result for `request`.

        Args:
            request: The user request
            token: Request token from the guard; a fresh one is issued if omitted
            on_status: Called with LOADING_IMAGE / LOADING_INSPIRATION as the
                shared operation crosses stage boundaries

        Returns:
            The result; `cache_hit` is True when served from the cache

        Raises:
            SupersededError: Every request joined to the operation went stale
            ModeratedContentError: The remote service refused the request
            RetryExhaustedError: Transient failures outlasted the retry budget
            GenerationError: Other classified failures
        """
        if token is None:
            token = self.guard.begin_request()

        key: str | None = None
        if request.is_cache_eligible:
            key = request_key(request)
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s (token=%d)", key, token)
                return cached.as_cache_hit()

            operation, created = self.registry.get_or_create(
                key,
                lambda op: self._run(op, request, key),
            )
            if not created:
                logger.debug("Joined in-flight generation for %s (token=%d)", key, token)
        else:
            # Each reference upload is presumed distinct: never coalesced
            operation = self.registry.start_unique(lambda op: self._run(op, request, None))

        operation.join(token, on_status)
        return await operation.wait()

    async def _run(
        self,
        operation: InFlightOperation[GenerationResult],
        request: GenerationRequest,
        key: str | None,
    ) -> GenerationResult:
        subject = request.display_subject
        style = request.style
        aspect_ratio = request.aspect_ratio

        operation.notify(GenerationStatus.LOADING_IMAGE)
        image = await with_retry(
            lambda: self._synthesize(request, subject),
            self.retry_policy,
            description="image synthesis",
            sleep=self._sleep,
        )
        self._ensure_wanted(operation, "image synthesis")

        operation.notify(GenerationStatus.LOADING_INSPIRATION)
        inspiration = await with_retry(
            lambda: self.backend.synthesize_commentary(image, subject, style),
            self.retry_policy,
            description="commentary synthesis",
            sleep=self._sleep,
        )
        self._ensure_wanted(operation, "commentary synthesis")

        result = GenerationResult(
            artifact=image,
            subject=subject,
            style=style,
            aspect_ratio=aspect_ratio,
            inspiration=inspiration,
        )
        if key is not None:
            self.cache.put(key, result)
        await self.history.append(HistoryEntry.from_result(result, request))
        logger.info(
            "Generated %s portrait of %r (%s, %d bytes)",
            style.value,
            subject,
            aspect_ratio.value,
            image.size_bytes,
        )
        return result

    def _synthesize(self, request: GenerationRequest, subject: str) -> Awaitable[ImagePayload]:
        if request.reference is not None:
            prompt = build_edit_prompt(subject, request.style)
            return self.backend.edit_image(request.reference, prompt, request.aspect_ratio)
        prompt = build_image_prompt(subject, request.style)
        return self.backend.synthesize_image(prompt, request.aspect_ratio)

    def _ensure_wanted(self, operation: InFlightOperation[GenerationResult], stage: str) -> None:
        """Abandon the operation once no joined request is current."""
        if operation.wanted_by(self.guard.is_current):
            return
        latest_token = operation.tokens[-1] if operation.tokens else None
        logger.debug("Dropping superseded result after %s (tokens=%s)", stage, operation.tokens)
        raise SupersededError(latest_token)
