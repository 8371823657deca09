"""Revision inspector: describes what a revision changed, file by file.

For one revision the inspector:

1. Resolves the revision's parents (once, memoised on the revision).
2. Classifies it as an initial checkin, a linear edit, or a merge.
3. Enumerates the files the revision touched.
4. Dispatches every file, once per parent, to its format handler.
5. After a merge, keeps only conflict reports, without duplicates.

Error handling is per file: a handler or retrieval failure for one file
becomes a single error report and the scan continues. Only failures to
resolve parents or enumerate files propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from lexsync.core.async_utils import run_sync
from lexsync.errors import ContainedRetrievalError, InvariantViolation
from lexsync.merge.handlers import ConflictFileHandler
from lexsync.merge.models import (
    ChangeReport,
    FileAction,
    FileInRevision,
    default_change_report,
    default_report,
    error_report,
)
from lexsync.merge.registry import HandlerRegistry

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import Revision

logger = logging.getLogger(__name__)


class CheckinKind(str, Enum):
    """How a revision relates to its parents."""

    INITIAL_CHECKIN = "initial_checkin"
    LINEAR_EDIT = "linear_edit"
    MERGE_CHECKIN = "merge_checkin"


def classify(parent_count: int) -> CheckinKind:
    if parent_count == 0:
        return CheckinKind.INITIAL_CHECKIN
    if parent_count == 1:
        return CheckinKind.LINEAR_EDIT
    return CheckinKind.MERGE_CHECKIN


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """Result of dispatching one file against one parent.

    Exactly one of *reports* (possibly empty) or *error* is meaningful.
    """

    file_in_revision: FileInRevision
    reports: tuple[ChangeReport, ...] = ()
    error: ContainedRetrievalError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_reports(self) -> list[ChangeReport]:
        """The reports to record; an error becomes one error report."""
        if self.error is not None:
            return [error_report(self.file_in_revision, self.error.message)]
        return list(self.reports)


@dataclass(frozen=True, slots=True)
class _Plan:
    kind: CheckinKind
    work: tuple[tuple[FileInRevision, str | None], ...]


class RevisionInspector:
    """Works with the format handlers to describe what a revision did.

    Args:
        backend: Repository the inspected revisions belong to.
        registry: Resolves each file path to its format handler.
    """

    def __init__(
        self, backend: RepositoryBackend, registry: HandlerRegistry
    ) -> None:
        self.backend = backend
        self.registry = registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_change_records(self, revision: Revision) -> list[ChangeReport]:
        """Return the change reports for *revision*.

        Raises:
            BackendError: If parents or files cannot be read.
            InvariantViolation: If the backend reports an unknown action.
        """
        plan = self._plan(revision)
        changes: list[ChangeReport] = []
        for file_in_revision, parent_rev in plan.work:
            outcome = self.dispatch(file_in_revision, parent_rev)
            changes.extend(outcome.to_reports())
        return self._finish(plan.kind, changes)

    async def get_change_records_async(
        self, revision: Revision
    ) -> list[ChangeReport]:
        """Async variant of ``get_change_records()``.

        Each backend call and per-file dispatch runs on a worker thread,
        so cancelling the awaiting task stops the scan between files.
        Reports gathered before cancellation are discarded.
        """
        plan = await run_sync(self._plan, revision)
        changes: list[ChangeReport] = []
        for file_in_revision, parent_rev in plan.work:
            outcome = await run_sync(
                self.dispatch, file_in_revision, parent_rev
            )
            changes.extend(outcome.to_reports())
        return self._finish(plan.kind, changes)

    def dispatch(
        self, file_in_revision: FileInRevision, parent_rev: str | None
    ) -> DispatchOutcome:
        """Run the handler for one file against one parent (or none)."""
        handler = self.registry.resolve(file_in_revision.full_path)
        if self.registry.is_default(handler):
            return DispatchOutcome(
                file_in_revision,
                reports=self._describe_unhandled(file_in_revision, parent_rev),
            )

        try:
            if (
                parent_rev is not None
                and file_in_revision.action == FileAction.MODIFIED
            ):
                reports = tuple(
                    handler.find_two_way_differences(
                        file_in_revision.as_parent(parent_rev),
                        file_in_revision,
                        self.backend,
                    )
                )
            else:
                with file_in_revision.create_temp_file(self.backend) as temp:
                    reports = tuple(
                        handler.describe_initial_contents(
                            file_in_revision, temp
                        )
                    )
        except InvariantViolation:
            raise
        except Exception as exc:
            logger.warning(
                "Could not describe %s in revision %s: %s",
                file_in_revision.full_path,
                file_in_revision.revision_number,
                exc,
            )
            return DispatchOutcome(
                file_in_revision,
                error=ContainedRetrievalError(
                    file_in_revision.full_path, str(exc)
                ),
            )
        return DispatchOutcome(file_in_revision, reports=reports)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _plan(self, revision: Revision) -> _Plan:
        revision.ensure_parent_revision_info()
        parents = revision.get_local_numbers_of_parents()
        kind = classify(len(parents))
        files = self.backend.get_files_in_revision(revision)
        logger.debug(
            "Inspecting %r: %s, %d file(s), %d parent(s)",
            revision,
            kind.value,
            len(files),
            len(parents),
        )

        if kind == CheckinKind.INITIAL_CHECKIN:
            work = tuple((f, None) for f in files)
        else:
            # one dispatch per parent per file; merges are filtered later
            work = tuple(
                (f, parent.local_revision_number)
                for parent in parents
                for f in files
            )
        return _Plan(kind, work)

    def _finish(
        self, kind: CheckinKind, changes: list[ChangeReport]
    ) -> list[ChangeReport]:
        if kind == CheckinKind.MERGE_CHECKIN:
            return self._filter_after_merge(changes)
        return changes

    def _filter_after_merge(
        self, reports: list[ChangeReport]
    ) -> list[ChangeReport]:
        """Keep only conflict-handler reports, each reported once.

        After a merge, differences against either parent are mostly the
        merge itself; only new conflicts are worth reporting. Edits that
        the merge resolved automatically are dropped along with them.
        """
        kept = [
            report
            for report in reports
            if isinstance(
                self.registry.resolve(report.path_to_file),
                ConflictFileHandler,
            )
        ]
        return list(dict.fromkeys(kept))

    @staticmethod
    def _describe_unhandled(
        file_in_revision: FileInRevision, parent_rev: str | None
    ) -> tuple[ChangeReport, ...]:
        match file_in_revision.action:
            case FileAction.ADDED:
                return (default_report(file_in_revision, "Added"),)
            case FileAction.MODIFIED:
                parent = FileInRevision(
                    revision_number=parent_rev,
                    full_path=file_in_revision.full_path,
                    action=FileAction.PARENT,
                )
                return (
                    default_change_report(parent, file_in_revision, "Changed"),
                )
            case FileAction.DELETED:
                return (default_report(file_in_revision, "Deleted"),)
            case _:
                raise InvariantViolation(
                    f"Unexpected action {file_in_revision.action!r} for "
                    f"{file_in_revision.full_path}"
                )
