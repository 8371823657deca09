"""Fallback handler for files no specialised handler claims."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from lexsync.errors import MergeFailure
from lexsync.merge.models import (
    ChangePresenter,
    ChangeReport,
    FileInRevision,
    MergeOrder,
    default_change_report,
    default_report,
)

from .base import FormatHandler, file_label, initial_kind

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile


class DefaultFileHandler(FormatHandler):
    """Describes any file at whole-file granularity.

    Never registered in the scanned handler list; the registry returns it
    only when nothing else claims a path.
    """

    def can_handle(self, path: str) -> bool:
        return True

    def find_two_way_differences(
        self,
        parent: FileInRevision,
        child: FileInRevision,
        backend: RepositoryBackend,
    ) -> Iterable[ChangeReport]:
        return [default_change_report(parent, child, "Changed")]

    def describe_initial_contents(
        self, file_in_revision: FileInRevision, temp_file: TempFile
    ) -> Iterable[ChangeReport]:
        _, label = initial_kind(file_in_revision)
        return [default_report(file_in_revision, label)]

    def do_three_way_merge(self, merge_order: MergeOrder) -> None:
        raise MergeFailure(
            merge_order.path_to_ours,
            "no format handler is installed for this file type",
        )

    def present(self, report: ChangeReport) -> ChangePresenter:
        return ChangePresenter(
            action_label=report.action_label,
            data_label=file_label(report.child),
            path=report.path_to_file,
            detail=report.details,
        )
