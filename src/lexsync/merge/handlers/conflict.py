"""Handler for annotation stores, the files that record merge conflicts.

After a merge checkin this is the only handler whose reports survive,
since a new conflict annotation is the one change a merge itself makes
that a user needs to see.
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
    FileAction,
    FileInRevision,
    MergeOrder,
    ReportKind,
)
from lexsync.notes.repository import (
    DEFAULT_EXTENSION,
    Annotation,
    parse_annotations,
    serialize_annotations,
)

from .base import ExtensionHandler, read_bytes_pair

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile

logger = logging.getLogger(__name__)


def _conflict_report(
    annotation: Annotation, child: FileInRevision
) -> ChangeReport:
    # no parent reference: the same conflict seen from both parents of a
    # merge must compare equal
    return ChangeReport(
        kind=ReportKind.CONFLICT,
        action_label="Conflict",
        child=child,
        data_label=annotation.ref or annotation.guid,
        details=annotation.text or None,
    )


class ConflictFileHandler(ExtensionHandler):
    """Report and merge conflict annotations."""

    def __init__(self, extension: str = DEFAULT_EXTENSION) -> None:
        super().__init__((f".{extension.lstrip('.')}",))

    def find_two_way_differences(
        self,
        parent: FileInRevision,
        child: FileInRevision,
        backend: RepositoryBackend,
    ) -> Iterator[ChangeReport]:
        parent_data, child_data = read_bytes_pair(parent, child, backend)
        known = {a.guid for a in parse_annotations(parent_data)}
        for annotation in parse_annotations(child_data):
            if annotation.is_conflict and annotation.guid not in known:
                yield _conflict_report(annotation, child)

    def describe_initial_contents(
        self, file_in_revision: FileInRevision, temp_file: TempFile
    ) -> Iterator[ChangeReport]:
        if file_in_revision.action == FileAction.DELETED:
            return
        for annotation in parse_annotations(temp_file.path.read_bytes()):
            if annotation.is_conflict:
                yield _conflict_report(annotation, file_in_revision)

    def do_three_way_merge(self, merge_order: MergeOrder) -> None:
        """Union both sides' annotations and message threads by guid.

        Annotations are append-only, so a union never loses a record and
        never conflicts.
        """
        try:
            ours = parse_annotations(Path(merge_order.path_to_ours).read_bytes())
            theirs = parse_annotations(
                Path(merge_order.path_to_theirs).read_bytes()
            )
        except (OSError, etree.XMLSyntaxError) as exc:
            raise MergeFailure(merge_order.path_to_ours, str(exc)) from exc

        merged: dict[str, Annotation] = {a.guid: a for a in ours}
        for annotation in theirs:
            mine = merged.get(annotation.guid)
            if mine is None:
                merged[annotation.guid] = annotation
                continue
            seen = {m.guid for m in mine.messages}
            extra = tuple(m for m in annotation.messages if m.guid not in seen)
            if extra:
                merged[annotation.guid] = mine.model_copy(
                    update={"messages": mine.messages + extra}
                )

        atomic_write_bytes(
            Path(merge_order.path_to_ours),
            serialize_annotations(merged.values()),
        )
        logger.info(
            "Merged %d annotation(s) into %s",
            len(merged),
            merge_order.path_to_ours,
        )
