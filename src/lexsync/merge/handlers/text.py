"""Plain-text handler: unified diffs and line-based three-way merge."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from lexsync.errors import MergeFailure
from lexsync.file_handler import atomic_write_text, decode_versions, read_text
from lexsync.merge.merger import attempt_merge, generate_diff
from lexsync.merge.models import (
    ChangeReport,
    FileInRevision,
    MergeOrder,
    ReportKind,
)

from .base import ExtensionHandler, file_label, initial_kind, read_text_pair

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile

logger = logging.getLogger(__name__)


class TextFileHandler(ExtensionHandler):
    """Handle plain-text files one line at a time."""

    def __init__(self, extensions: tuple[str, ...] = (".txt",)) -> None:
        super().__init__(extensions)

    def find_two_way_differences(
        self,
        parent: FileInRevision,
        child: FileInRevision,
        backend: RepositoryBackend,
    ) -> Iterator[ChangeReport]:
        old_text, new_text = read_text_pair(parent, child, backend)
        diff = generate_diff(
            old_text,
            new_text,
            label_old=f"{parent.full_path}@{parent.revision_number}",
            label_new=f"{child.full_path}@{child.revision_number}",
        )
        if diff:
            yield ChangeReport(
                kind=ReportKind.CHANGED,
                action_label="Edited",
                child=child,
                parent=parent,
                data_label=file_label(child),
                details=diff,
            )

    def describe_initial_contents(
        self, file_in_revision: FileInRevision, temp_file: TempFile
    ) -> Iterator[ChangeReport]:
        kind, label = initial_kind(file_in_revision)
        lines = read_text(temp_file.path).splitlines()
        yield ChangeReport(
            kind=kind,
            action_label=label,
            child=file_in_revision,
            data_label=file_label(file_in_revision),
            details=f"{len(lines)} line(s)",
        )

    def do_three_way_merge(self, merge_order: MergeOrder) -> None:
        ours_path = Path(merge_order.path_to_ours)
        try:
            raw = [
                ours_path.read_bytes(),
                Path(merge_order.path_to_common_ancestor).read_bytes(),
                Path(merge_order.path_to_theirs).read_bytes(),
            ]
        except OSError as exc:
            raise MergeFailure(merge_order.path_to_ours, str(exc)) from exc

        try:
            (ours, base, theirs), encoding = decode_versions(raw)
        except UnicodeError as exc:
            raise MergeFailure(merge_order.path_to_ours, str(exc)) from exc

        merged, conflict_count = attempt_merge(
            base,
            ours,
            theirs,
            our_label=merge_order.our_label,
            their_label=merge_order.their_label,
        )
        try:
            atomic_write_text(ours_path, merged, encoding=encoding)
        except UnicodeEncodeError as exc:
            raise MergeFailure(
                merge_order.path_to_ours,
                f"merged text cannot be written as {encoding}: {exc}",
            ) from exc

        if conflict_count:
            merge_order.record_conflict(
                Path(merge_order.path_to_ours).name,
                f"{conflict_count} region(s) edited by both "
                f"{merge_order.our_label} and {merge_order.their_label}; "
                "conflict markers left in the file",
            )
        logger.info(
            "Merged %s with %d conflicting region(s)",
            merge_order.path_to_ours,
            conflict_count,
        )
