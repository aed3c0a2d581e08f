"""Provider factory for generation backend dispatch."""

from __future__ import annotations

from atelier.core.config.models import AppConfig
from atelier.core.providers.base import GenerationBackend, ProviderType
from atelier.core.providers.gemini import GeminiBackend
from atelier.core.providers.openai import OpenAIBackend


def create_backend(app_config: AppConfig) -> GenerationBackend:
    """Create the configured generation backend."""
    provider_name = app_config.provider.lower().strip()

    if provider_name == ProviderType.GEMINI.value:
        return GeminiBackend(
            api_key=app_config.gemini.api_key,
            image_model=app_config.gemini.image_model,
            commentary_model=app_config.gemini.commentary_model,
        )

    if provider_name == ProviderType.OPENAI.value:
        return OpenAIBackend(
            api_key=app_config.openai.api_key,
            image_model=app_config.openai.image_model,
            commentary_model=app_config.openai.commentary_model,
            timeout=app_config.openai.timeout_s,
        )

    raise ValueError(f"Unknown generation provider configured: {app_config.provider}")
