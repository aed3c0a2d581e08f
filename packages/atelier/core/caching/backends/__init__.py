"""Result cache backends."""

from atelier.core.caching.backends.memory import MemoryResultCache
from atelier.core.caching.backends.null import NullResultCache

__all__ = ["MemoryResultCache", "NullResultCache"]
