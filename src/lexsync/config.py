"""Runtime configuration for lexsync sessions and entry points.

Reads project settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    LEXSYNC_PROJECT_ROOT: Project repository root (required)
    LEXSYNC_HG: Mercurial executable (optional, default: hg)
    LEXSYNC_NOTES_EXTENSION: Annotation store extension (optional, default: lexnotes)
    LEXSYNC_USER: Name recorded on merge annotations (optional, default: lexsync)
    LEXSYNC_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Config:
    project_root: str
    hg: str = "hg"
    notes_extension: str = "lexnotes"
    user: str = "lexsync"
    debug: bool = False
    dictionary_extensions: tuple[str, ...] = (".lift",)
    text_extensions: tuple[str, ...] = (".txt",)
    project_config_extensions: tuple[str, ...] = (".lexconfig",)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the project root is missing or not a directory, or
            the notes extension is not a bare suffix.
    """
    config.project_root = config.project_root.strip()
    if not config.project_root:
        raise ValueError(
            "Project root cannot be empty. Set LEXSYNC_PROJECT_ROOT environment variable."
        )

    root = Path(config.project_root).expanduser()
    if not root.is_dir():
        raise ValueError(
            f"Invalid project root '{config.project_root}': not a directory"
        )
    config.project_root = str(root.resolve())

    config.notes_extension = config.notes_extension.strip().lstrip(".")
    if not config.notes_extension or any(
        sep in config.notes_extension for sep in ("/", "\\", ".")
    ):
        raise ValueError(
            f"Invalid notes extension '{config.notes_extension}': "
            "must be a non-empty suffix without separators"
        )

    if not config.hg.strip():
        raise ValueError("Mercurial executable cannot be empty.")


def load_config(
    project_root: str | None = None,
    hg: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
    handler_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        project_root: Override project root (takes precedence over env var and YAML).
        hg: Override Mercurial executable.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``project`` section.
        handler_fallbacks: Dict of values from the YAML ``handlers`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the project root is missing after checking all
            sources, or any value is invalid.
    """
    fb = yaml_fallbacks or {}
    hfb = handler_fallbacks or {}

    root = (
        project_root
        or os.getenv("LEXSYNC_PROJECT_ROOT")
        or fb.get("root")
    )
    if not root:
        raise ValueError(
            "Project root not found. Set LEXSYNC_PROJECT_ROOT environment variable, "
            "pass --project-root CLI argument, or add 'root' to config.yml."
        )

    final_hg = hg or os.getenv("LEXSYNC_HG") or fb.get("hg") or "hg"
    final_extension = (
        os.getenv("LEXSYNC_NOTES_EXTENSION")
        or fb.get("notes_extension")
        or "lexnotes"
    )
    final_user = os.getenv("LEXSYNC_USER") or fb.get("user") or "lexsync"

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("LEXSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        project_root=root,
        hg=final_hg,
        notes_extension=final_extension,
        user=final_user,
        debug=final_debug,
        dictionary_extensions=tuple(
            hfb.get("dictionary_extensions", (".lift",))
        ),
        text_extensions=tuple(hfb.get("text_extensions", (".txt",))),
        project_config_extensions=tuple(
            hfb.get("project_config_extensions", (".lexconfig",))
        ),
    )

    validate_config(config)

    return config
