"""No-op result cache.

Always reports a miss and discards all stores. Used when caching is disabled.
"""

from atelier.core.models import GenerationResult


class NullResultCache:
    """No-op cache: every lookup misses."""

    def get(self, key: str) -> GenerationResult | None:
        """Always returns None."""
        return None

    def put(self, key: str, result: GenerationResult) -> None:
        """Discard."""
        pass

    def clear(self) -> None:
        """No-op."""
        pass

    def __len__(self) -> int:
        return 0
