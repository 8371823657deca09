"""Project configuration handler (XML settings files).

Configuration is merged as a whole document: settings interact, so a
field-by-field merge could produce a combination neither user chose.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from lxml import etree

from lexsync.errors import MergeFailure
from lexsync.file_handler import atomic_write_bytes
from lexsync.merge.models import (
    ChangeReport,
    ConflictHandlingMode,
    FileInRevision,
    MergeOrder,
    ReportKind,
)

from .base import ExtensionHandler, file_label, initial_kind, read_bytes_pair

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(
    remove_blank_text=True, resolve_entities=False, no_network=True
)


def canonical(data: bytes) -> bytes:
    """Whitespace-insensitive canonical form of an XML document.

    Empty input canonicalises to ``b""``.
    """
    if not data.strip():
        return b""
    return etree.tostring(
        etree.fromstring(data, parser=_PARSER), method="c14n"
    )


def changed_sections(old: bytes, new: bytes) -> list[str]:
    """Tags of the top-level settings that differ between two documents."""
    old_root = etree.fromstring(old, parser=_PARSER)
    new_root = etree.fromstring(new, parser=_PARSER)

    def index(root: etree._Element) -> dict[str, bytes]:
        return {
            child.tag: etree.tostring(child, method="c14n")
            for child in root
            if isinstance(child.tag, str)
        }

    before, after = index(old_root), index(new_root)
    return sorted(
        tag
        for tag in before.keys() | after.keys()
        if before.get(tag) != after.get(tag)
    )


class ProjectConfigFileHandler(ExtensionHandler):
    """Handle project configuration documents."""

    def __init__(
        self, extensions: tuple[str, ...] = (".lexconfig",)
    ) -> None:
        super().__init__(extensions)

    def find_two_way_differences(
        self,
        parent: FileInRevision,
        child: FileInRevision,
        backend: RepositoryBackend,
    ) -> Iterator[ChangeReport]:
        old, new = read_bytes_pair(parent, child, backend)
        if canonical(old) == canonical(new):
            return
        sections = changed_sections(old, new)
        yield ChangeReport(
            kind=ReportKind.CHANGED,
            action_label="Changed",
            child=child,
            parent=parent,
            data_label=file_label(child),
            details=("Changed settings: " + ", ".join(sections))
            if sections
            else None,
        )

    def describe_initial_contents(
        self, file_in_revision: FileInRevision, temp_file: TempFile
    ) -> Iterator[ChangeReport]:
        kind, label = initial_kind(file_in_revision)
        # malformed configuration is a retrieval error, not an addition
        canonical(temp_file.path.read_bytes())
        yield ChangeReport(
            kind=kind,
            action_label=label,
            child=file_in_revision,
            data_label=file_label(file_in_revision),
        )

    def do_three_way_merge(self, merge_order: MergeOrder) -> None:
        try:
            ancestor = canonical(
                Path(merge_order.path_to_common_ancestor).read_bytes()
            )
            our_data = Path(merge_order.path_to_ours).read_bytes()
            their_data = Path(merge_order.path_to_theirs).read_bytes()
            ours, theirs = canonical(our_data), canonical(their_data)
        except (OSError, etree.XMLSyntaxError) as exc:
            raise MergeFailure(merge_order.path_to_ours, str(exc)) from exc

        if ours == theirs or theirs == ancestor:
            logger.info("Kept our configuration in %s", merge_order.path_to_ours)
            return
        if ours == ancestor:
            atomic_write_bytes(Path(merge_order.path_to_ours), their_data)
            logger.info(
                "Took their configuration for %s", merge_order.path_to_ours
            )
            return

        merge_order.record_conflict(
            Path(merge_order.path_to_ours).name,
            f"Both {merge_order.our_label} and {merge_order.their_label} "
            f"changed the configuration; kept {merge_order.winner_label}'s "
            "version",
        )
        if merge_order.mode == ConflictHandlingMode.THEY_WIN:
            atomic_write_bytes(Path(merge_order.path_to_ours), their_data)