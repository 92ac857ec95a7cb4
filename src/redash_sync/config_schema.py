"""Unified configuration schema for redash_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the Redash connection, the local mirror, and logging.
``UnifiedConfig.fallbacks()`` feeds the file values into ``load_config()``.

Usage:
    from redash_sync.config import load_config
    from redash_sync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
    config = load_config(url=args.url, yaml_fallbacks=unified.fallbacks())
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RedashConfig(BaseModel):
    """Redash server connection settings.

    Both fields are optional here: env vars and CLI args can supply them
    at runtime instead.
    """

    url: str | None = Field(default=None, description="Redash base URL")
    api_key: str | None = Field(default=None, description="Redash API key")
    page_size: int = Field(
        default=100,
        ge=1,
        le=250,
        description="Queries fetched per list request (1-250)",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Local mirror settings."""

    queries_dir: str = Field(
        default="queries", description="Directory holding the query mirror"
    )
    diff_tool: str | None = Field(
        default=None,
        description="External diff tool ('git'); built-in diff when unset",
    )
    strategy: str = Field(
        default="interactive",
        description="Decision strategy: interactive, local-wins, remote-wins, skip",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    redash: RedashConfig = Field(default_factory=RedashConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def fallbacks(self) -> dict:
        """Flatten the redash and sync sections into ``load_config`` fallbacks.

        ``None`` values are dropped so they never shadow env vars.
        """
        merged = {**self.sync.model_dump(), **self.redash.model_dump()}
        return {k: v for k, v in merged.items() if v is not None}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the dict returned by
    ``load_hierarchical_config()``.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

