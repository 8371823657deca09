"""Configuration bootstrap shared by the command-line entry points.

Loads configuration with unified precedence:
    CLI args > env vars (.env loaded first) > YAML config > defaults
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from lexsync.config import Config, load_config
from lexsync.config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from lexsync.config_schema import LoggingConfig, UnifiedConfig, build_config

logger = logging.getLogger(__name__)


def load_unified_config(project_root: str | None = None) -> UnifiedConfig:
    """Load ``.env`` and every discovered YAML file into a ``UnifiedConfig``.

    ``.env`` is loaded first so that ``${VAR}`` interpolation in YAML files
    can use its values.
    """
    load_dotenv()
    base = Path(project_root) if project_root else None
    if not discover_config_files(base):
        return UnifiedConfig()
    return build_config(load_hierarchical_config(base))


def resolve_config(
    unified: UnifiedConfig, overrides: dict[str, Any] | None = None
) -> Config:
    """Merge YAML values, environment and CLI overrides into a ``Config``.

    Args:
        unified: Result of ``load_unified_config()``.
        overrides: CLI values (project_root, hg, debug).

    Raises:
        ValueError: If the configuration is incomplete or invalid.
    """
    overrides = overrides or {}
    yaml_fallbacks = {
        k: v for k, v in unified.project.model_dump().items() if v is not None
    }
    return load_config(
        project_root=overrides.get("project_root"),
        hg=overrides.get("hg"),
        debug=overrides.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
        handler_fallbacks=unified.handlers.model_dump(),
    )


def logging_settings(
    unified: UnifiedConfig, log_file: str | None = None
) -> LoggingConfig:
    """Logging section with a CLI log file applied on top."""
    if log_file:
        return unified.logging.model_copy(update={"file": log_file})
    return unified.logging
