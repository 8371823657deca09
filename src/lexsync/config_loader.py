"""
Hierarchical configuration loader for lexsync.

Config files are plain YAML with two extras: ``!include other.yml`` pulls
another file in at that point, and ``${VAR}`` / ``${VAR:-default}`` are
replaced from the environment once all files are merged.

Usage:
    from lexsync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".lexsync"
CONFIG_ENV_VAR = "LEXSYNC_CONFIG"

# ---------------------------------------------------------------------------
# Env var interpolation
# ---------------------------------------------------------------------------

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references in *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    none is given. A ``${`` without a closing brace is kept as written.
    """

    def _expand(match: re.Match) -> str:
        name, fallback = match.groups()
        return os.environ.get(name) or (fallback or "")

    return _ENV_REF.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    """Apply ``interpolate_env_vars`` to every string inside *obj*."""
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return list(map(_interpolate_recursive, obj))
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    return obj


# ---------------------------------------------------------------------------
# YAML with !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """``SafeLoader`` that understands ``!include``.

    Each instance knows the chain of files that led to it, so an include
    cycle is reported instead of recursing forever. ``yaml.SafeLoader``
    itself is left untouched.
    """

    def __init__(self, stream, include_chain: tuple[Path, ...] = ()) -> None:
        super().__init__(stream)
        self.include_chain = include_chain

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node))
        if not target.is_absolute():
            target = self.include_chain[-1].parent / target
        target = target.resolve()

        if target in self.include_chain:
            cycle = " -> ".join(map(str, (*self.include_chain, target)))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.exists():
            raise FileNotFoundError(
                f"Include file not found: {target} "
                f"(referenced from {self.include_chain[-1]})"
            )
        return _load_yaml_with_includes(target, _chain=self.include_chain)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def _load_yaml_with_includes(
    path: Path, *, _chain: tuple[Path, ...] = ()
) -> Any:
    """Parse one YAML file, following any ``!include`` it contains."""
    path = Path(path).resolve()
    with open(path, encoding="utf-8") as fh:
        loader = ConfigLoader(fh, include_chain=(*_chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _candidate_paths(project_root: Path | None) -> list[Path]:
    base = project_root or Path.cwd()
    home = Path.home()
    paths = [
        base / CONFIG_DIR_NAME / "config.yml",
        base / CONFIG_DIR_NAME / "config.yaml",
        home / ".config" / "lexsync" / "config.yml",
        home / CONFIG_DIR_NAME / "config.yaml",
    ]
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        paths.insert(0, Path(explicit).expanduser().resolve())
    return paths


def discover_config_files(project_root: Path | None = None) -> list[Path]:
    """Return existing config files, highest precedence first.

    Precedence:
        1. ``LEXSYNC_CONFIG`` (one explicit file)
        2. ``<project root>/.lexsync/config.yml`` (project root defaults to CWD)
        3. ``<project root>/.lexsync/config.yaml``
        4. ``~/.config/lexsync/config.yml``
        5. ``~/.lexsync/config.yaml``
    """
    return [p for p in _candidate_paths(project_root) if p.exists()]


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# lexsync configuration
#
# Project settings can also be set via environment variables:
#   LEXSYNC_PROJECT_ROOT, LEXSYNC_HG, LEXSYNC_NOTES_EXTENSION, LEXSYNC_USER
#
# project:
#   root: ${HOME}/projects/my-dictionary
#   hg: hg
#   notes_extension: lexnotes
#   user: Jane Linguist
#
# handlers:
#   dictionary_extensions: [".lift"]
#   text_extensions: [".txt"]
#   project_config_extensions: [".lexconfig"]
#
# logging:
#   level: INFO
#   file: null
#   format: text
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a starter one if none exists.

    Args:
        target: Where to write the starter file. Defaults to
            ``CWD / .lexsync / config.yml``.

    Returns:
        Path of the highest-precedence existing file, or of the new one.
    """
    found = discover_config_files()
    if found:
        logger.debug("Using existing config file %s", found[0])
        return found[0]

    path = target or Path.cwd() / CONFIG_DIR_NAME / "config.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config %s", path)
    return path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config(
    project_root: Path | None = None,
) -> dict[str, Any]:
    """Load every discovered config file into one dict.

    Files are applied from lowest to highest precedence and each file's
    top-level sections replace earlier ones wholesale ("project wins").
    Env var references are expanded after the merge. No files means ``{}``.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files(project_root)):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Ignoring config file %s: top level is %s, not a mapping",
                path,
                type(data).__name__,
            )

    if not merged:
        logger.debug("No config values found, using defaults")
    return _interpolate_recursive(merged)
