"""Revision and temporary-file models for the version-control backend."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from .backend import RepositoryBackend

logger = logging.getLogger(__name__)


class RevisionNumber(BaseModel):
    """A revision's identity: its local number and its global node hash."""

    local_revision_number: str
    hash: str = ""

    model_config = {"frozen": True}


class Revision:
    """A committed snapshot in the backend, linked to zero or more parents.

    Parent links are resolved lazily through the backend and memoised on
    the instance, so repeated inspection issues a single backend call.

    Args:
        backend: Repository the revision belongs to.
        number: The revision's own number.
        summary: Commit message, when known.
        user: Committer, when known.
    """

    def __init__(
        self,
        backend: RepositoryBackend,
        number: RevisionNumber,
        summary: str = "",
        user: str = "",
    ) -> None:
        self.backend = backend
        self.number = number
        self.summary = summary
        self.user = user
        self._parents: tuple[RevisionNumber, ...] | None = None

    def __repr__(self) -> str:
        return f"Revision({self.number.local_revision_number}:{self.number.hash[:12]})"

    def ensure_parent_revision_info(self) -> None:
        """Resolve parent links once; later calls are no-ops."""
        if self._parents is None:
            self._parents = tuple(self.backend.get_parent_numbers(self))
            logger.debug(
                "Resolved %d parent(s) for %r", len(self._parents), self
            )

    @property
    def has_at_least_one_parent(self) -> bool:
        self.ensure_parent_revision_info()
        return bool(self._parents)

    def get_local_numbers_of_parents(self) -> list[RevisionNumber]:
        """Return parent revision numbers in backend order."""
        self.ensure_parent_revision_info()
        return list(self._parents or ())


class TempFile:
    """A temporary file deleted when its context exits.

    Use as a context manager; ``path`` is valid only inside the block.
    """

    def __init__(self, suffix: str = "") -> None:
        fd, name = tempfile.mkstemp(prefix="lexsync-", suffix=suffix)
        os.close(fd)
        self.path = Path(name)

    @classmethod
    def with_extension_of(cls, path: str) -> TempFile:
        """Create an empty temp file sharing *path*'s extension.

        Handlers are chosen by extension, so materialized copies keep it.
        """
        return cls(suffix=Path(path).suffix)

    def release(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    def __enter__(self) -> TempFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
