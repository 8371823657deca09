"""The version-control backend contract consumed by the inspector."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from lexsync.merge.models import FileInRevision

    from .models import Revision, RevisionNumber, TempFile


class RepositoryBackend(Protocol):
    """Protocol that every repository backend must satisfy."""

    @property
    def path_to_repo(self) -> str:
        """Absolute path of the repository's working copy."""
        ...  # pragma: no cover

    def get_parent_numbers(self, revision: Revision) -> list[RevisionNumber]:
        """Return the parents of *revision* in backend order.

        Raises:
            BackendError: If the revision graph cannot be read.
        """
        ...  # pragma: no cover

    def get_files_in_revision(
        self, revision: Revision
    ) -> list[FileInRevision]:
        """Return every file touched by *revision* with its action.

        Raises:
            BackendError: If the file list cannot be read.
        """
        ...  # pragma: no cover

    def materialize_to_temp_file(
        self, file_in_revision: FileInRevision
    ) -> TempFile:
        """Extract one historical version into a temporary file.

        The caller owns the returned ``TempFile`` and must release it.
        """
        ...  # pragma: no cover
