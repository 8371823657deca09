"""The contract every file-format handler implements.

A handler is a stateless strategy: it holds configuration only, never
per-revision state, so one instance can serve concurrent inspections.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from lexsync.file_handler import decode_versions
from lexsync.merge.models import (
    ChangePresenter,
    ChangeReport,
    FileAction,
    FileInRevision,
    MergeOrder,
    ReportKind,
)

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile


class FormatHandler(ABC):
    """Diff, describe, merge and present one file format."""

    @abstractmethod
    def can_handle(self, path: str) -> bool:
        """Return ``True`` if this handler understands *path*.

        Must be pure and must not open the file.
        """

    @abstractmethod
    def find_two_way_differences(
        self,
        parent: FileInRevision,
        child: FileInRevision,
        backend: RepositoryBackend,
    ) -> Iterable[ChangeReport]:
        """Describe what changed between *parent* and *child*.

        An empty result means no meaningful change.
        """

    @abstractmethod
    def describe_initial_contents(
        self, file_in_revision: FileInRevision, temp_file: TempFile
    ) -> Iterable[ChangeReport]:
        """Describe what a file holds when it has no prior version.

        Also used for a file deleted under a parent, in which case
        *temp_file* holds its last content.
        """

    @abstractmethod
    def do_three_way_merge(self, merge_order: MergeOrder) -> None:
        """Merge ours and theirs against the ancestor, writing over ours.

        Runs headless. Unresolved edits are reported to the merge order's
        listener; only an unusable result raises.

        Raises:
            MergeFailure: If no usable output can be produced.
        """

    @abstractmethod
    def present(self, report: ChangeReport) -> ChangePresenter:
        """Render a report this handler produced."""


class ExtensionHandler(FormatHandler):
    """Base for handlers that claim files by extension.

    Args:
        extensions: Extensions (with leading dot) claimed, case-insensitive.
    """

    def __init__(self, extensions: Iterable[str]) -> None:
        self.extensions = tuple(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in extensions
        )

    def can_handle(self, path: str) -> bool:
        return PurePosixPath(path.replace("\\", "/")).suffix.lower() in (
            self.extensions
        )

    def present(self, report: ChangeReport) -> ChangePresenter:
        return ChangePresenter(
            action_label=report.action_label,
            data_label=report.data_label or file_label(report.child),
            path=report.path_to_file,
            detail=report.details,
        )


# ---------------------------------------------------------------------------
# Helpers shared by handlers
# ---------------------------------------------------------------------------


def file_label(file_in_revision: FileInRevision) -> str:
    return PurePosixPath(file_in_revision.full_path).name


def initial_kind(file_in_revision: FileInRevision) -> tuple[ReportKind, str]:
    """Report kind and label for content described without a diff."""
    if file_in_revision.action == FileAction.DELETED:
        return ReportKind.DELETED, "Deleted"
    return ReportKind.ADDED, "Added"


def read_bytes_pair(
    parent: FileInRevision,
    child: FileInRevision,
    backend: RepositoryBackend,
) -> tuple[bytes, bytes]:
    """Materialize both versions, read them, and release the temp files."""
    with parent.create_temp_file(backend) as parent_file:
        parent_data = parent_file.path.read_bytes()
    with child.create_temp_file(backend) as child_file:
        child_data = child_file.path.read_bytes()
    return parent_data, child_data


def read_text_pair(
    parent: FileInRevision,
    child: FileInRevision,
    backend: RepositoryBackend,
) -> tuple[str, str]:
    """Text variant of ``read_bytes_pair()``.

    Both versions are decoded with one shared encoding so that unchanged
    lines compare equal.

    Raises:
        UnicodeError: If the versions have no common encoding.
    """
    parent_data, child_data = read_bytes_pair(parent, child, backend)
    (child_text, parent_text), _ = decode_versions([child_data, parent_data])
    return parent_text, child_text
