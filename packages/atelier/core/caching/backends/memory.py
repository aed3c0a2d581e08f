"""In-memory result cache.

Unbounded by default; an optional entry limit turns it into an LRU.
"""

from collections import OrderedDict
import logging

from atelier.core.models import GenerationResult

logger = logging.getLogger(__name__)


class MemoryResultCache:
    """
    Process-lifetime result cache.

    With `max_entries=None` entries are never evicted. With a limit, the
    least recently used entry is dropped once the limit is exceeded.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        """
        Initialize memory cache.

        Args:
            max_entries: Optional LRU bound (None = unbounded)
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, GenerationResult] = OrderedDict()

    @property
    def max_entries(self) -> int | None:
        return self._max_entries

    def get(self, key: str) -> GenerationResult | None:
        """Return cached result or None (refreshes LRU position on hit)."""
        result = self._entries.get(key)
        if result is not None and self._max_entries is not None:
            self._entries.move_to_end(key)
        return result

    def put(self, key: str, result: GenerationResult) -> None:
        """Store result; first write for a key wins."""
        if key in self._entries:
            return
        self._entries[key] = result.model_copy(update={"cache_hit": False})
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
