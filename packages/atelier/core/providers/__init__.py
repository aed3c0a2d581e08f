"""Generation backend abstraction."""

from atelier.core.providers.base import (
    GenerationBackend,
    ProviderType,
    decode_image_result,
    parse_inspiration,
)
from atelier.core.providers.factory import create_backend
from atelier.core.providers.gemini import GeminiBackend
from atelier.core.providers.openai import OpenAIBackend

__all__ = [
    "GenerationBackend",
    "ProviderType",
    "decode_image_result",
    "parse_inspiration",
    "create_backend",
    "GeminiBackend",
    "OpenAIBackend",
]
