"""Unified configuration schema for lexsync.

Defines Pydantic models for the unified config structure with dedicated
sections for the project, the installed format handlers, and logging.
``lexsync.cli.bootstrap.resolve_config()`` passes these sections to
``lexsync.config.load_config()`` as fallbacks for the flat ``Config``.

Usage:
    from lexsync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Project repository settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    root: str | None = Field(
        default=None, description="Root folder of the project repository"
    )
    hg: str = Field(default="hg", description="Mercurial executable")
    notes_extension: str = Field(
        default="lexnotes",
        description="Extension appended to an annotated file's path to "
        "locate its annotation store",
    )
    user: str = Field(
        default="lexsync",
        description="Name recorded on annotations created by merges",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}

    @field_validator("notes_extension")
    @classmethod
    def _strip_leading_dot(cls, value: str) -> str:
        return value.lstrip(".")


class HandlersConfig(BaseModel):
    """File extensions claimed by each installed format handler.

    Handler *order* is fixed by the registry; only the extensions each
    handler claims are configurable.
    """

    dictionary_extensions: list[str] = Field(
        default_factory=lambda: [".lift"],
        description="Extensions handled as XML dictionaries",
    )
    text_extensions: list[str] = Field(
        default_factory=lambda: [".txt"],
        description="Extensions handled as plain text",
    )
    project_config_extensions: list[str] = Field(
        default_factory=lambda: [".lexconfig"],
        description="Extensions handled as project configuration",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``"text"`` or ``"json"``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", description="Log record format")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    handlers: HandlersConfig = Field(default_factory=HandlersConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
