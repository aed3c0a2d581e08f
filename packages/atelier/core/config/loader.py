"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from atelier.core.config.models import AppConfig

logger = logging.getLogger(__name__)


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("atelier.json")
        'json'
        >>> detect_format("atelier.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            content = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        # safe_load returns None for empty files
        if content is None:
            content = {}

    if not isinstance(content, dict):
        raise ValueError(f"Config root must be a mapping in {path}")
    return content


def load_app_config(path: str | Path | None = None, *, required: bool = False) -> AppConfig:
    """Load and validate application configuration.

    Environment variables fill API keys that the file leaves unset.

    Args:
        path: Path to app config file; defaults to AppConfig.default_path()
        required: Raise if the file is missing instead of using defaults

    Returns:
        Validated AppConfig instance with defaults for missing values

    Raises:
        FileNotFoundError: If `required` and the file does not exist
        ValueError: If the file cannot be parsed
        ValidationError: If config is invalid
    """
    config_path = Path(path) if path is not None else AppConfig.default_path()

    if config_path.exists():
        config = AppConfig.model_validate(load_config(config_path))
        logger.debug("Loaded app config from %s", config_path)
    elif required:
        raise FileNotFoundError(f"Config file does not exist: {config_path}")
    else:
        config = AppConfig()

    return _load_env_vars_into_config(config)


def _load_env_vars_into_config(config: AppConfig) -> AppConfig:
    """Return a copy of `config` with API keys filled from the environment."""
    updates: dict[str, Any] = {}

    if config.gemini.api_key is None:
        gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if gemini_key:
            logger.debug("Loaded Gemini API key from environment")
            updates["gemini"] = config.gemini.model_copy(update={"api_key": gemini_key})

    if config.openai.api_key is None:
        openai_key = os.getenv("OPENAI_API_KEY")
        if openai_key:
            logger.debug("Loaded OPENAI_API_KEY from environment")
            updates["openai"] = config.openai.model_copy(update={"api_key": openai_key})

    if not updates:
        return config
    return config.model_copy(update=updates)
