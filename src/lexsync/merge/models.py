"""Data contracts shared by the revision inspector and format handlers.

- ``FileAction``: Closed set of actions a file can carry in a revision.
- ``FileInRevision``: One file's state within one revision.
- ``ReportKind`` / ``ChangeReport``: The uniform result of every diff.
- ``ChangePresenter``: Human-readable rendering of one report.
- ``Conflict`` / ``ConflictListener`` / ``MergeOrder``: Inputs and
  side-channel outputs of a three-way merge.

Reports and file references are frozen pydantic models, so equality and
hashing are by value; deduplication relies on this.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile

ERROR_RETRIEVING_LABEL = "Error retrieving historical version"


class FileAction(str, Enum):
    """What happened to a file in a revision.

    ``PARENT`` never comes from the backend; it tags a reference to the
    pre-change state of a file, used as the left side of a two-way diff.
    """

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    PARENT = "parent"


class FileInRevision(BaseModel):
    """One file's state within one revision.

    Attributes:
        revision_number: Local revision number, or ``None`` when the file
            reference has no owning revision (e.g. working copy).
        full_path: Repository-relative path using ``/`` separators.
        action: What happened to the file in that revision.
    """

    revision_number: str | None
    full_path: str
    action: FileAction

    model_config = {"frozen": True}

    def as_parent(self, parent_revision: str) -> FileInRevision:
        """Return a ``PARENT``-tagged reference to this path in *parent_revision*."""
        return FileInRevision(
            revision_number=parent_revision,
            full_path=self.full_path,
            action=FileAction.PARENT,
        )

    def create_temp_file(self, backend: RepositoryBackend) -> TempFile:
        """Materialize this version into a scoped temporary file."""
        return backend.materialize_to_temp_file(self)


class ReportKind(str, Enum):
    """Kinds of change report a handler can produce."""

    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"
    CONFLICT = "conflict"
    DEFAULT = "default"


class ChangeReport(BaseModel):
    """A single, human-describable change within a revision.

    Attributes:
        kind: Report kind.
        action_label: Short label such as ``"Added"`` or ``"Changed"``.
        child: The file as of the inspected revision.
        parent: The ``PARENT``-tagged counterpart for modifications.
        data_label: What inside the file changed (entry id, setting name).
        details: Optional detail text (diff, conflict description, error).
    """

    kind: ReportKind
    action_label: str
    child: FileInRevision
    parent: FileInRevision | None = None
    data_label: str | None = None
    details: str | None = None

    model_config = {"frozen": True}

    @property
    def path_to_file(self) -> str:
        """Path used to re-resolve the handler that owns this report."""
        return self.child.full_path


def default_report(child: FileInRevision, action_label: str) -> ChangeReport:
    """Fallback report for a file no specialised handler claims."""
    return ChangeReport(
        kind=ReportKind.DEFAULT, action_label=action_label, child=child
    )


def default_change_report(
    parent: FileInRevision, child: FileInRevision, action_label: str
) -> ChangeReport:
    """Fallback report for a modification, carrying both file references."""
    return ChangeReport(
        kind=ReportKind.DEFAULT,
        action_label=action_label,
        child=child,
        parent=parent,
    )


def error_report(child: FileInRevision, message: str) -> ChangeReport:
    """Degraded report standing in for a file whose diff failed."""
    return ChangeReport(
        kind=ReportKind.DEFAULT,
        action_label=f"{ERROR_RETRIEVING_LABEL}: {message}",
        child=child,
        details=message,
    )


@dataclass(frozen=True, slots=True)
class ChangePresenter:
    """Human-readable rendering of one change report."""

    action_label: str
    data_label: str
    path: str
    detail: str | None = None

    def as_text(self) -> str:
        head = f"{self.action_label}: {self.data_label}"
        if self.data_label != self.path:
            head += f" ({self.path})"
        if self.detail:
            return f"{head}\n{self.detail}"
        return head


# ---------------------------------------------------------------------------
# Merge inputs and conflict collection
# ---------------------------------------------------------------------------


class ConflictHandlingMode(str, Enum):
    """Which side wins an irreconcilable edit."""

    WE_WIN = "we_win"
    THEY_WIN = "they_win"


class Conflict(BaseModel):
    """An edit a three-way merge could not reconcile automatically.

    Attributes:
        path: Path of the merged file.
        data_label: What inside the file conflicted.
        description: Human-readable description of the conflict.
        winner: Label of the side whose content was kept.
    """

    path: str
    data_label: str
    description: str
    winner: str

    model_config = {"frozen": True}


class ConflictListener:
    """Collects conflicts reported by a handler during one merge."""

    def __init__(self) -> None:
        self.conflicts: list[Conflict] = []

    def conflict_occurred(self, conflict: Conflict) -> None:
        self.conflicts.append(conflict)

    def __len__(self) -> int:
        return len(self.conflicts)


@dataclass(frozen=True, slots=True)
class MergeOrder:
    """Everything a handler needs to merge one file headlessly.

    The merged result is written over ``path_to_ours``.

    Attributes:
        path_to_ours: Our version; receives the merge result.
        path_to_common_ancestor: The common ancestor version.
        path_to_theirs: Their version.
        our_label: Name of our side for conflict descriptions.
        their_label: Name of their side for conflict descriptions.
        mode: Which side wins an irreconcilable edit.
        listener: Receives every conflict found during the merge.
    """

    path_to_ours: str
    path_to_common_ancestor: str
    path_to_theirs: str
    our_label: str = "ours"
    their_label: str = "theirs"
    mode: ConflictHandlingMode = ConflictHandlingMode.WE_WIN
    listener: ConflictListener = field(default_factory=ConflictListener)

    @property
    def winner_label(self) -> str:
        if self.mode == ConflictHandlingMode.WE_WIN:
            return self.our_label
        return self.their_label

    def record_conflict(self, data_label: str, description: str) -> None:
        """Report a conflict on ``path_to_ours`` to the listener."""
        self.listener.conflict_occurred(
            Conflict(
                path=self.path_to_ours,
                data_label=data_label,
                description=description,
                winner=self.winner_label,
            )
        )
