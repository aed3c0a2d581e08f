"""Configuration models for Atelier Muse."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from atelier.core.api.retry import RetryPolicy


class GeminiConfig(BaseModel):
    """Google Gemini backend settings."""

    model_config = ConfigDict(extra="forbid")

    api_key: str | None = Field(
        default=None, description="API key (load from env: GEMINI_API_KEY or GOOGLE_API_KEY)"
    )
    image_model: str = Field(default="gemini-2.5-flash-image", description="Image generation/editing model")
    commentary_model: str = Field(default="gemini-3-flash-preview", description="Commentary model")


class OpenAIConfig(BaseModel):
    """OpenAI backend settings."""

    model_config = ConfigDict(extra="forbid")

    api_key: str | None = Field(default=None, description="API key (load from env: OPENAI_API_KEY)")
    image_model: str = Field(default="gpt-image-1", description="Image generation/editing model")
    commentary_model: str = Field(default="gpt-4.1-mini", description="Vision-capable commentary model")
    timeout_s: float = Field(default=120.0, gt=0, description="Timeout per API call")


class RetryConfig(BaseModel):
    """Retry policy for each remote call."""

    model_config = ConfigDict(extra="forbid")

    max_retries: int = Field(default=3, ge=0, le=10, description="Retries after the first attempt")
    initial_delay_s: float = Field(default=1.0, ge=0.0, description="Delay before the first retry")
    backoff: float = Field(default=2.0, ge=2.0, description="Delay multiplier per retry")
    jitter: float = Field(default=0.0, ge=0.0, le=1.0, description="Extra random delay fraction")

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay_s=self.initial_delay_s,
            backoff=self.backoff,
            jitter=self.jitter,
        )


class CacheConfig(BaseModel):
    """Session result cache."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Disable to use the null cache")
    max_entries: int | None = Field(
        default=None, ge=1, description="LRU bound (None = unbounded for the session)"
    )


class HistoryConfig(BaseModel):
    """Persisted gallery."""

    model_config = ConfigDict(extra="forbid")

    capacity: int = Field(default=15, ge=1, description="Maximum entries kept")
    storage_dir: str = Field(default=".atelier", description="Directory holding the history document")
    storage_key: str = Field(
        default="current_history",
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Key (file stem) of the history document",
    )

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir) / f"{self.storage_key}.json"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = Field(default=False, description="Emit JSON log lines")
    filename: str | None = Field(default=None, description="Log file (None = stdout)")


class AppConfig(BaseModel):
    """Application configuration."""

    model_config = ConfigDict(extra="ignore")

    provider: str = Field(default="gemini", pattern="^(gemini|openai)$")
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("atelier.yaml")
