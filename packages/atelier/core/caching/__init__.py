"""Session caching for Atelier Muse.

- Key Builder: deterministic keys from normalized request parameters
- Result Cache: completed results per key (memory or null backend)
- In-Flight Registry: coalesces concurrent identical requests
"""

from atelier.core.caching.backends.memory import MemoryResultCache
from atelier.core.caching.backends.null import NullResultCache
from atelier.core.caching.inflight import InFlightOperation, InFlightRegistry
from atelier.core.caching.keys import build_key, request_key
from atelier.core.caching.protocols import ResultCache

__all__ = [
    # Core
    "ResultCache",
    "InFlightOperation",
    "InFlightRegistry",
    # Backends
    "MemoryResultCache",
    "NullResultCache",
    # Keys
    "build_key",
    "request_key",
]
