"""Retry policy for remote generation calls.

Wraps a fallible async operation, retrying transient failures with
exponential backoff and failing fast on permanent ones (moderation
rejections and client-error statuses).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
import logging
import random
from typing import TypeVar

from pydantic import BaseModel, Field

from atelier.core.api.errors import (
    ModeratedContentError,
    RetryExhaustedError,
    SupersededError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MODERATION_MARKERS: tuple[str, ...] = (
    "safety",
    "moderation",
    "content_policy",
    "content policy",
    "blocked",
    "prohibited",
    "policy violation",
    "responsible ai",
)

# 4xx statuses that are still worth retrying
_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class FailureClass(str, Enum):
    """Outcome of classifying one failed attempt."""

    MODERATED = "moderated"
    PERMANENT = "permanent"
    EXHAUSTED = "exhausted"
    TRANSIENT = "transient"


class RetryPolicy(BaseModel):
    """Retry policy configuration.

    Args:
        max_retries: Retries after the initial attempt (0 = single attempt)
        initial_delay_s: Delay before the first retry
        backoff: Multiplier applied to the delay after each retry
        jitter: Extra random delay as a fraction of the base delay (added,
            never subtracted, so the base delay is a lower bound)
    """

    model_config = {"frozen": True}

    max_retries: int = Field(default=3, ge=0)
    initial_delay_s: float = Field(default=1.0, ge=0.0)
    backoff: float = Field(default=2.0, ge=2.0)
    jitter: float = Field(default=0.0, ge=0.0, le=1.0)

    def compute_delay(self, retry: int) -> float:
        """Compute the wait before a retry.

        Args:
            retry: Retry number (1-indexed, 1 = first retry after initial failure)

        Returns:
            Delay in seconds, at least initial_delay_s * backoff ** (retry - 1)
        """
        delay: float = self.initial_delay_s * (self.backoff ** (retry - 1))
        if self.jitter > 0:
            delay += random.uniform(0.0, delay * self.jitter)
        return delay


def _status_code(error: BaseException) -> int | None:
    """Best-effort HTTP status extraction across SDK exception shapes."""
    for attr in ("status_code", "code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def is_moderation_failure(error: BaseException) -> bool:
    """True if the error (or its direct cause) carries a moderation marker."""
    candidates: list[BaseException] = [error]
    if error.__cause__ is not None:
        candidates.append(error.__cause__)
    for candidate in candidates:
        if isinstance(candidate, ModeratedContentError):
            return True
        text = str(candidate).lower()
        if any(marker in text for marker in MODERATION_MARKERS):
            return True
    return False


def is_client_error(error: BaseException) -> bool:
    """True for a 4xx status that retrying cannot fix."""
    status = _status_code(error)
    if status is None:
        return False
    return 400 <= status < 500 and status not in _RETRYABLE_CLIENT_STATUSES


def classify_failure(error: BaseException, retries_left: int) -> FailureClass:
    """Classify a failed attempt.

    Args:
        error: The exception raised by the attempt
        retries_left: Remaining retry budget

    Returns:
        MODERATED, PERMANENT, EXHAUSTED (retryable but out of budget), or TRANSIENT
    """
    if is_moderation_failure(error):
        return FailureClass.MODERATED
    if isinstance(error, SupersededError) or is_client_error(error):
        return FailureClass.PERMANENT
    if retries_left <= 0:
        return FailureClass.EXHAUSTED
    return FailureClass.TRANSIENT


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `operation`, retrying transient failures with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        policy: Retry policy (defaults: 3 retries, 1s initial delay, x2)
        description: Label for log messages
        sleep: Awaitable sleep used between attempts (injectable for tests)

    Returns:
        The first successful result

    Raises:
        ModeratedContentError: On a moderation rejection (never retried)
        RetryExhaustedError: When transient failures outlast the budget
        Exception: Other permanent failures propagate unchanged
    """
    policy = policy or RetryPolicy()
    retries_left = policy.max_retries
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            outcome = classify_failure(e, retries_left)

            if outcome is FailureClass.MODERATED:
                logger.warning("%s rejected by moderation on attempt %d: %s", description, attempt, e)
                if isinstance(e, ModeratedContentError):
                    raise
                raise ModeratedContentError(str(e)) from e

            if outcome is FailureClass.PERMANENT:
                raise

            if outcome is FailureClass.EXHAUSTED:
                logger.warning("%s failed after %d attempts: %s", description, attempt, e)
                raise RetryExhaustedError(attempt, e) from e

            retry = policy.max_retries - retries_left + 1
            delay = policy.compute_delay(retry)
            logger.warning(
                "%s attempt %d/%d failed (retryable), retrying in %.2fs: %s",
                description,
                attempt,
                policy.max_retries + 1,
                delay,
                e,
            )
            retries_left -= 1
            await sleep(delay)
