"""Configuration for the capture gallery.

Settings come from three layers (highest wins):

1. Environment variables (``CAPTURE_GALLERY_*``)
2. An optional YAML config file passed to ``load_settings``
3. In-code defaults

Example:
    >>> from capture_gallery.config import get_settings
    >>> settings = get_settings()
    >>> settings.photo_mime_type
    'image/jpeg'

Config File Format (YAML):
    ```yaml
    photo_mime_type: image/jpeg
    video_mime_type: video/mp4
    file_prefixes: ["/data/", "file://", "content://"]
    delete_after_import: true
    fetch_timeout_seconds: 30
    file_server_base: http://localhost/_capacitor_file_
    log_level: INFO
    ```
"""

from __future__ import annotations

import functools
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "CAPTURE_GALLERY_"


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileError(ConfigError):
    """Config file is missing, unreadable, or not a YAML mapping."""

    pass


# =============================================================================
# Settings
# =============================================================================


class GallerySettings(BaseSettings):
    """Runtime settings for capture ingestion.

    Attributes:
        photo_mime_type: MIME type used when wrapping photo payloads.
        video_mime_type: MIME type used when wrapping video payloads.
        file_prefixes: Prefixes that classify a reference as a file path/URI.
        delete_after_import: Delete photo source files after conversion.
        fetch_timeout_seconds: Timeout for dereferencing URL sources.
        file_server_base: Base URL that local video paths are served under.
            When unset, videos are addressed with ``file://`` URIs.
        log_level: Level passed to ``setup_logging``.
        log_file: Optional log file path.
    """

    photo_mime_type: str = "image/jpeg"
    video_mime_type: str = "video/mp4"
    file_prefixes: tuple[str, ...] = ("/data/", "file://", "content://")
    delete_after_import: bool = True
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    file_server_base: str | None = None
    log_level: str = "INFO"
    log_file: Path | None = None

    model_config = {
        "env_prefix": ENV_PREFIX,
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("photo_mime_type", "video_mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """MIME types must look like ``type/subtype``."""
        v = v.strip().lower()
        if "/" not in v or v.startswith("/") or v.endswith("/"):
            raise ValueError(f"Invalid MIME type: {v!r}")
        return v

    @field_validator("file_prefixes")
    @classmethod
    def validate_file_prefixes(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop empty prefixes; an empty prefix would match everything."""
        prefixes = tuple(p for p in v if p)
        if not prefixes:
            raise ValueError("At least one file prefix is required")
        return prefixes

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


# =============================================================================
# Loading
# =============================================================================


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigFileError(f"Config file not found: {path}")
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigFileError(f"Failed to read config file {path}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigFileError(f"Config file {path} must contain a mapping")
    return loaded


def load_settings(path: Path | None = None) -> GallerySettings:
    """Load settings from an optional YAML file, environment, and defaults.

    Args:
        path: Optional YAML config file.

    Returns:
        Fully-populated GallerySettings instance.

    Raises:
        ConfigFileError: If ``path`` is given but cannot be used.
        ConfigError: If a configured value fails validation.
    """
    file_data = _read_config_file(path) if path is not None else {}

    # Environment wins over the file, so only pass file keys the env leaves unset.
    env_keys = {k.upper() for k in os.environ}
    overrides = {
        key: value
        for key, value in file_data.items()
        if f"{ENV_PREFIX}{key}".upper() not in env_keys
    }

    try:
        settings = GallerySettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug(f"Settings loaded (file={path}, keys={sorted(overrides)})")
    return settings


@functools.lru_cache(maxsize=1)
def get_settings() -> GallerySettings:
    """Get the cached settings singleton (environment and defaults only)."""
    return load_settings()
