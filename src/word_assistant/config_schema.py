"""Typed schema for the YAML configuration file.

Sections mirror the runtime concerns of the word assistant::

    api:
      url: https://words.example.com/api
      token: ${WORD_ASSISTANT_TOKEN}
      connect_timeout: 10
      read_timeout: 30
    sync:
      debounce_seconds: 2
      interval_seconds: 300
      data_dir: ~/.word_assistant/data
    review:
      daily_limit: 5
    logging:
      level: WARNING
      file: null

Every field has a default, so an empty or missing file is valid.

Usage:
    from word_assistant.config_schema import build_config, yaml_fallbacks

    unified = build_config(load_hierarchical_config())
    config = load_config(yaml_fallbacks=yaml_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ApiConfig(BaseModel):
    """Remote word service connection settings."""

    url: str | None = Field(default=None, description="Service base URL")
    token: str | None = Field(default=None, description="Bearer credential")
    debug: bool = Field(default=False, description="Enable debug mode")
    connect_timeout: float = Field(
        default=10.0, gt=0, description="TCP connect timeout (seconds)"
    )
    read_timeout: float = Field(
        default=30.0, gt=0, description="Response read timeout (seconds)"
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Sync engine tuning and local storage location."""

    debounce_seconds: float = Field(
        default=2.0, gt=0, description="Delay after the last edit"
    )
    interval_seconds: float = Field(
        default=300.0, gt=0, description="Periodic sync interval"
    )
    data_dir: str | None = Field(
        default=None, description="Directory for the local collection"
    )

    model_config = {"frozen": True}


class ReviewConfig(BaseModel):
    daily_limit: int = Field(
        default=5, ge=1, le=100, description="Words per daily batch"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            unset means the entry point default.
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class UnifiedConfig(BaseModel):
    """Top-level configuration; ``UnifiedConfig()`` is always valid."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Validate the raw dict from ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a value is out of range.
    """
    if not raw_data:
        return UnifiedConfig()
    return UnifiedConfig(**raw_data)


def yaml_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten *unified* into the fallback dict accepted by ``load_config``.

    ``None`` values are dropped so they never shadow built-in defaults.
    """
    flat: dict[str, Any] = {}
    flat.update(unified.api.model_dump())
    flat.update(unified.sync.model_dump())
    flat.update(unified.review.model_dump())
    return {k: v for k, v in flat.items() if v is not None}
