"""Test doubles and builders shared by the lexsync test modules."""

from __future__ import annotations

from lexsync.errors import BackendError
from lexsync.merge.handlers.base import ExtensionHandler
from lexsync.merge.models import (
    ChangeReport,
    FileAction,
    FileInRevision,
    ReportKind,
)
from lexsync.vcs.models import Revision, RevisionNumber, TempFile


class FakeBackend:
    """In-memory ``RepositoryBackend`` recording every call it receives.

    Attributes:
        parents: Revision number -> parent revision numbers.
        files: Revision number -> files touched by that revision.
        contents: ``(revision_number, path)`` -> bytes returned when that
            version is materialized.
        failing_paths: Paths whose materialization raises ``OSError``.
    """

    def __init__(self, path_to_repo: str = "/repo") -> None:
        self._path_to_repo = path_to_repo
        self.parents: dict[str, list[RevisionNumber]] = {}
        self.files: dict[str, list[FileInRevision]] = {}
        self.contents: dict[tuple[str | None, str], bytes] = {}
        self.failing_paths: set[str] = set()
        self.parent_calls = 0
        self.file_calls = 0
        self.materialized: list[FileInRevision] = []

    @property
    def path_to_repo(self) -> str:
        return self._path_to_repo

    def get_parent_numbers(self, revision):
        self.parent_calls += 1
        return list(
            self.parents.get(revision.number.local_revision_number, [])
        )

    def get_files_in_revision(self, revision):
        self.file_calls += 1
        number = revision.number.local_revision_number
        if number not in self.files:
            raise BackendError("status", f"unknown revision {number}")
        return list(self.files[number])

    def materialize_to_temp_file(self, file_in_revision):
        self.materialized.append(file_in_revision)
        if file_in_revision.full_path in self.failing_paths:
            raise OSError(f"cannot read {file_in_revision.full_path}")
        temp = TempFile.with_extension_of(file_in_revision.full_path)
        temp.path.write_bytes(
            self.contents.get(
                (file_in_revision.revision_number, file_in_revision.full_path),
                b"",
            )
        )
        return temp

    # helpers for building scenarios

    def add_revision(
        self,
        number: str,
        files: list[FileInRevision],
        parents: list[str] | None = None,
    ) -> Revision:
        self.files[number] = files
        self.parents[number] = [
            RevisionNumber(local_revision_number=p, hash=f"node{p}")
            for p in parents or []
        ]
        return Revision(
            self, RevisionNumber(local_revision_number=number, hash="")
        )


class RecordingHandler(ExtensionHandler):
    """Handler stub returning canned reports and counting calls."""

    def __init__(
        self,
        extensions: tuple[str, ...],
        diff_result=None,
        initial_result=None,
        diff_error: Exception | None = None,
    ) -> None:
        super().__init__(extensions)
        self.diff_result = diff_result
        self.initial_result = initial_result
        self.diff_error = diff_error
        self.diff_calls: list[tuple[FileInRevision, FileInRevision]] = []
        self.initial_calls: list[FileInRevision] = []
        self.merge_calls = []

    def find_two_way_differences(self, parent, child, backend):
        self.diff_calls.append((parent, child))
        if self.diff_error is not None:
            raise self.diff_error
        if self.diff_result is not None:
            return self.diff_result(parent, child)
        return [
            ChangeReport(
                kind=ReportKind.CHANGED,
                action_label="Edited",
                child=child,
                parent=parent,
            )
        ]

    def describe_initial_contents(self, file_in_revision, temp_file):
        self.initial_calls.append(file_in_revision)
        assert temp_file.path.exists()
        if self.initial_result is not None:
            return self.initial_result(file_in_revision)
        return [
            ChangeReport(
                kind=ReportKind.ADDED,
                action_label="Added",
                child=file_in_revision,
            )
        ]

    def do_three_way_merge(self, merge_order):
        self.merge_calls.append(merge_order)


def fir(
    path: str, action: FileAction = FileAction.MODIFIED, rev: str = "2"
) -> FileInRevision:
    """Shorthand for a ``FileInRevision``."""
    return FileInRevision(revision_number=rev, full_path=path, action=action)
