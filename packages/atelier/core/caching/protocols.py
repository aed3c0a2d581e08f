"""Protocol for result cache backends."""

from typing import Protocol

from atelier.core.models import GenerationResult


class ResultCache(Protocol):
    """
    Session-scoped mapping from request key to completed result.

    Implementations are in-process only; nothing survives a restart.
    Entries are never mutated once stored.
    """

    def get(self, key: str) -> GenerationResult | None:
        """
        Look up a completed result.

        Args:
            key: Request key

        Returns:
            Cached result, or None on miss
        """
        ...

    def put(self, key: str, result: GenerationResult) -> None:
        """
        Store a completed result.

        Args:
            key: Request key
            result: Result to store (stored without cache-hit tagging)
        """
        ...

    def clear(self) -> None:
        """Drop every entry."""
        ...

    def __len__(self) -> int: ...
