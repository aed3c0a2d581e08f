"""Cache and dedup key derivation.

Keys are a type prefix followed by the canonical JSON encoding of the
normalized parts, so distinct inputs cannot collide by concatenation.
"""

from __future__ import annotations

from enum import Enum
import json
from typing import Any

from pydantic import BaseModel

from atelier.core.models import GenerationRequest

REQUEST_KEY_PREFIX = "portrait"


def _normalize_part(part: Any) -> Any:
    """Normalize one key part into a JSON-encodable value."""
    if isinstance(part, Enum):
        return part.value
    if isinstance(part, str):
        return part.strip().lower()
    if isinstance(part, BaseModel):
        return part.model_dump(mode="json")
    if isinstance(part, (list, tuple)):
        return [_normalize_part(p) for p in part]
    if isinstance(part, dict):
        return {str(k): _normalize_part(v) for k, v in part.items()}
    return part


def build_key(prefix: str, parts: list[Any] | tuple[Any, ...]) -> str:
    """Build a deterministic key from a prefix and parts.

    Strings are trimmed and lowercased, enums contribute their value and
    any other part is serialized structurally.

    Example:
        >>> build_key("portrait", ["  A Sailor ", "Oil", "1:1"])
        'portrait:["a sailor","oil","1:1"]'
    """
    normalized = [_normalize_part(p) for p in parts]
    encoded = json.dumps(
        normalized,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return f"{prefix}:{encoded}"


def request_key(request: GenerationRequest) -> str:
    """Key for a cache-eligible request.

    Raises:
        ValueError: If the request carries a reference image.
    """
    if not request.is_cache_eligible:
        raise ValueError("Requests with a reference image have no cache key")
    return build_key(
        REQUEST_KEY_PREFIX,
        [request.subject, request.style, request.aspect_ratio],
    )
