"""``lexsync-merge``: three-way merge tool invoked by the version-control backend.

Configured in Mercurial as a merge tool, e.g.::

    [merge-tools]
    lexsync.executable = lexsync-merge
    lexsync.args = $local $base $other
    lexsync.premerge = False

The merged result replaces OURS. Conflicts do not fail the merge: they
are resolved by policy and recorded as annotations next to OURS.

Exit codes: 0 on success (with or without conflicts), 1 if no usable
merge could be produced or the configuration is invalid.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from lexsync import __version__
from lexsync.errors import LexSyncError, MergeFailure
from lexsync.logger import setup_logging
from lexsync.merge.models import ConflictHandlingMode, MergeOrder
from lexsync.reporter import format_conflicts
from lexsync.session import LexSyncSession

from .bootstrap import load_unified_config, logging_settings, resolve_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lexsync-merge",
        description="Three-way merge of one file, writing the result over OURS",
    )
    parser.add_argument("ours", help="Our version; receives the merge result")
    parser.add_argument("common", help="Common ancestor version")
    parser.add_argument("theirs", help="Their version")
    parser.add_argument(
        "--our-label", default="ours", help="Name of our side in conflicts"
    )
    parser.add_argument(
        "--their-label",
        default="theirs",
        help="Name of their side in conflicts",
    )
    parser.add_argument(
        "--they-win",
        action="store_true",
        help="Keep their version of irreconcilable edits (default: ours)",
    )
    parser.add_argument("--project-root", help="Override project root")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument(
        "--log-file",
        help="Log file path (default: LEXSYNC_LOG_FILE or /tmp/lexsync.log)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"lexsync-merge version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Merge one file and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        unified = load_unified_config(args.project_root)
        log_settings = logging_settings(unified, args.log_file)
        setup_logging(
            mode="driver",
            debug=args.debug,
            log_file=log_settings.file,
            level=log_settings.level,
        )

        # hg runs merge tools from the repository root
        project_root = args.project_root
        if not (
            project_root
            or os.getenv("LEXSYNC_PROJECT_ROOT")
            or unified.project.root
        ):
            project_root = os.getcwd()

        config = resolve_config(
            unified, {"project_root": project_root, "debug": args.debug}
        )
    except ValueError as e:
        print(f"lexsync-merge: configuration error: {e}", file=sys.stderr)
        return 1

    order = MergeOrder(
        path_to_ours=args.ours,
        path_to_common_ancestor=args.common,
        path_to_theirs=args.theirs,
        our_label=args.our_label,
        their_label=args.their_label,
        mode=(
            ConflictHandlingMode.THEY_WIN
            if args.they_win
            else ConflictHandlingMode.WE_WIN
        ),
    )

    try:
        with LexSyncSession(config) as session:
            conflicts = session.merge(order)
    except MergeFailure as e:
        logger.error("%s", e)
        print(f"lexsync-merge: {e}", file=sys.stderr)
        return 1
    except LexSyncError as e:
        logger.exception("Merge of %s aborted", args.ours)
        print(f"lexsync-merge: {e}", file=sys.stderr)
        return 1

    logger.info("Merged %s. %s", args.ours, format_conflicts(conflicts))
    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
