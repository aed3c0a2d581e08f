"""Configuration management for Atelier Muse."""

from atelier.core.config.loader import detect_format, load_app_config, load_config
from atelier.core.config.models import (
    AppConfig,
    CacheConfig,
    GeminiConfig,
    HistoryConfig,
    LoggingConfig,
    OpenAIConfig,
    RetryConfig,
)

__all__ = [
    # Loaders
    "detect_format",
    "load_config",
    "load_app_config",
    # Models
    "AppConfig",
    "CacheConfig",
    "GeminiConfig",
    "HistoryConfig",
    "LoggingConfig",
    "OpenAIConfig",
    "RetryConfig",
]
