"""``lexsync`` command: inspect revisions and annotation stores.

Subcommands:

- ``changes REV``: describe what revision REV changed, file by file.
- ``notes PATH``: list the annotations attached to PATH.
- ``init-config``: write a starter config file.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from lexsync import __version__
from lexsync.config_loader import ensure_config
from lexsync.errors import LexSyncError
from lexsync.logger import setup_logging
from lexsync.reporter import format_change_records, reports_to_json
from lexsync.session import LexSyncSession

from .bootstrap import load_unified_config, logging_settings, resolve_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lexsync",
        description="lexsync - format-aware change detection for linguistic data repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Describe the changes in revision 42
  lexsync --project-root ~/projects/my-dictionary changes 42

  # Same, as JSON
  lexsync changes tip --json

  # Show annotations attached to a dictionary
  lexsync notes dictionary.lift

  # Write a starter config to .lexsync/config.yml
  lexsync init-config
        """,
    )
    parser.add_argument(
        "--project-root",
        help="Override project root (takes precedence over LEXSYNC_PROJECT_ROOT env var and config files)",
    )
    parser.add_argument(
        "--hg",
        help="Override Mercurial executable (takes precedence over LEXSYNC_HG env var and config files)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"lexsync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    changes = sub.add_parser(
        "changes", help="Describe the changes made by a revision"
    )
    changes.add_argument("revision", help="Revision number, hash or spec")
    changes.add_argument(
        "--json", action="store_true", help="Emit JSON instead of text"
    )

    notes = sub.add_parser(
        "notes", help="List the annotations attached to a file"
    )
    notes.add_argument("path", help="Annotated file")
    notes.add_argument(
        "--conflicts",
        action="store_true",
        help="Only show conflict annotations",
    )

    init = sub.add_parser("init-config", help="Write a starter config file")
    init.add_argument(
        "--target",
        help="Config file to create (default: .lexsync/config.yml)",
    )
    return parser


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_changes(session: LexSyncSession, args: argparse.Namespace) -> int:
    revision = session.get_revision(args.revision)
    reports = asyncio.run(session.get_change_records_async(revision))
    if args.json:
        print(json.dumps(reports_to_json(reports), indent=2))
    else:
        title = f"Revision {revision.number.local_revision_number}"
        if revision.summary:
            title += f": {revision.summary.splitlines()[0]}"
        print(format_change_records(reports, session.registry, title=title))
    return 0


def _cmd_notes(session: LexSyncSession, args: argparse.Namespace) -> int:
    repo = session.get_notes_repository(args.path)
    annotations = (
        repo.conflict_annotations if args.conflicts else repo.annotations
    )
    if not annotations:
        print(f"No annotations for {args.path}.")
        return 0
    for annotation in annotations:
        print(f"[{annotation.class_name}] {annotation.ref}")
        for message in annotation.messages:
            print(f"  {message.author} ({message.date}): {message.text}")
    return 0


_COMMANDS = {
    "changes": _cmd_changes,
    "notes": _cmd_notes,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Run the ``lexsync`` command and return its exit code."""
    args = build_parser().parse_args(argv)

    if args.command == "init-config":
        path = ensure_config(Path(args.target) if args.target else None)
        print(f"Config file: {path}")
        return 0

    try:
        unified = load_unified_config(args.project_root)
        log_settings = logging_settings(unified, args.log_file)
        setup_logging(
            mode="cli",
            debug=args.debug,
            log_file=log_settings.file,
            debug_format=log_settings.format,
            level=log_settings.level,
        )
        config = resolve_config(
            unified,
            {
                "project_root": args.project_root,
                "hg": args.hg,
                "debug": args.debug,
            },
        )
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        with LexSyncSession(config) as session:
            return _COMMANDS[args.command](session, args)
    except LexSyncError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
