"""Remote-call policy: error taxonomy and retry handling."""

from atelier.core.api.errors import (
    ErrorKind,
    GenerationError,
    MalformedResultError,
    ModeratedContentError,
    ProviderError,
    RetryExhaustedError,
    SupersededError,
    TransientFailureError,
    error_kind,
    user_message,
)
from atelier.core.api.retry import RetryPolicy, classify_failure, with_retry

__all__ = [
    "ErrorKind",
    "GenerationError",
    "MalformedResultError",
    "ModeratedContentError",
    "ProviderError",
    "RetryExhaustedError",
    "SupersededError",
    "TransientFailureError",
    "error_kind",
    "user_message",
    "RetryPolicy",
    "classify_failure",
    "with_retry",
]
