from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Classified failure kinds surfaced to the presentation layer."""

    MODERATED_CONTENT = "moderated_content"
    TRANSIENT_FAILURE = "transient_failure"
    MALFORMED_RESULT = "malformed_result"
    SUPERSEDED = "superseded"
    PROVIDER_ERROR = "provider_error"


class GenerationError(Exception):
    """Base exception for all generation failures."""

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ModeratedContentError(GenerationError):
    """Remote service refused the request on safety/policy grounds. Never retried."""

    kind = ErrorKind.MODERATED_CONTENT


class TransientFailureError(GenerationError):
    """Network or service hiccup that a retry may fix."""

    kind = ErrorKind.TRANSIENT_FAILURE


class RetryExhaustedError(TransientFailureError):
    """Transient failures persisted past the retry budget.

    Attributes:
        attempts: Total attempts made (initial call + retries)
        last_error: Final underlying failure
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


class MalformedResultError(GenerationError):
    """Remote call succeeded but its payload is missing or invalid."""

    kind = ErrorKind.MALFORMED_RESULT


class SupersededError(GenerationError):
    """A newer request was issued; this result is dropped silently."""

    kind = ErrorKind.SUPERSEDED

    def __init__(self, token: int | None = None) -> None:
        self.token = token
        super().__init__(f"Request {token} superseded" if token is not None else "Superseded")


class ProviderErrorData(BaseModel):
    """Structured data for remote provider errors.

    Args:
        message: Human-readable error description
        provider: Provider name (gemini, openai, ...)
        operation: Remote operation (synthesize_image, edit_image, ...)
        status_code: HTTP status code (if available)
        cause: Original exception that caused this error
    """

    model_config = {"arbitrary_types_allowed": True}

    message: str
    provider: str
    operation: str
    status_code: int | None = None
    cause: BaseException | None = Field(default=None, repr=False)


class ProviderError(GenerationError):
    """Remote SDK failure with structured context.

    Attributes:
        data: Structured error data (ProviderErrorData)
        provider: Provider name
        operation: Remote operation name
        status_code: HTTP status code (if available)
        cause: Original exception that caused this error
    """

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        *,
        message: str,
        provider: str,
        operation: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.data = ProviderErrorData(
            message=message,
            provider=provider,
            operation=operation,
            status_code=status_code,
            cause=cause,
        )
        self.provider = self.data.provider
        self.operation = self.data.operation
        self.status_code = self.data.status_code
        self.cause = self.data.cause
        super().__init__(message)

    def __str__(self) -> str:
        """Format error for logging and display."""
        parts = [self.message, f"{self.provider}.{self.operation}"]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        return " | ".join(parts)


MODERATION_MESSAGE = (
    "The studio declined this request because it conflicts with content guidelines. "
    "Try rephrasing the subject or choosing a different reference image."
)
TECHNICAL_MESSAGE = "The studio could not finish this piece due to a technical problem. Please try again."
MALFORMED_MESSAGE = "The studio returned an incomplete piece. Please try again."


def error_kind(error: BaseException) -> ErrorKind:
    """Kind for any exception (unclassified errors count as provider errors)."""
    if isinstance(error, GenerationError):
        return error.kind
    return ErrorKind.PROVIDER_ERROR


def user_message(error: BaseException) -> str:
    """User-visible message; moderation is distinguished from technical failure."""
    kind = error_kind(error)
    if kind is ErrorKind.MODERATED_CONTENT:
        return MODERATION_MESSAGE
    if kind is ErrorKind.MALFORMED_RESULT:
        return MALFORMED_MESSAGE
    return TECHNICAL_MESSAGE
