"""Mercurial adapter implementing ``RepositoryBackend``.

Drives the ``hg`` executable through ``subprocess.run``; every query is a
single, non-interactive command with ``HGPLAIN`` set so output is stable
regardless of the user's configuration.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from lexsync.errors import BackendError, InvariantViolation
from lexsync.merge.models import FileAction, FileInRevision

from .models import Revision, RevisionNumber, TempFile

logger = logging.getLogger(__name__)

_STATUS_ACTIONS: dict[str, FileAction] = {
    "A": FileAction.ADDED,
    "M": FileAction.MODIFIED,
    "R": FileAction.DELETED,
}

_NULL_REV = "-1"
_FIELD_SEP = "\x1f"


class HgRepository:
    """A Mercurial working copy.

    Args:
        path_to_repo: Root of the working copy.
        hg: Mercurial executable name or path.
        timeout: Seconds allowed for any single ``hg`` command.
    """

    def __init__(
        self, path_to_repo: str, hg: str = "hg", timeout: float = 60
    ) -> None:
        self._path_to_repo = str(Path(path_to_repo).resolve())
        self._hg = hg
        self._timeout = timeout

    @property
    def path_to_repo(self) -> str:
        return self._path_to_repo

    # ------------------------------------------------------------------
    # RepositoryBackend
    # ------------------------------------------------------------------

    def get_parent_numbers(self, revision: Revision) -> list[RevisionNumber]:
        """Return the parents of *revision*, skipping the null revision."""
        out = self._run(
            "log",
            "-r",
            self._rev_spec(revision),
            "--template",
            "{p1rev}:{p1node}\\n{p2rev}:{p2node}\\n",
        )
        parents: list[RevisionNumber] = []
        for line in out.splitlines():
            rev, _, node = line.partition(":")
            if not rev or rev == _NULL_REV:
                continue
            parents.append(
                RevisionNumber(local_revision_number=rev, hash=node)
            )
        return parents

    def get_files_in_revision(
        self, revision: Revision
    ) -> list[FileInRevision]:
        """List files touched by *revision* via ``hg status --change``.

        Raises:
            InvariantViolation: If hg reports a status letter outside the
                added / modified / removed set.
        """
        number = revision.number.local_revision_number
        out = self._run("status", "--change", self._rev_spec(revision))
        files: list[FileInRevision] = []
        for line in out.splitlines():
            if not line.strip():
                continue
            code, _, path = line.partition(" ")
            action = _STATUS_ACTIONS.get(code)
            if action is None:
                raise InvariantViolation(
                    f"Unexpected hg status '{code}' for {path} in revision {number}"
                )
            files.append(
                FileInRevision(
                    revision_number=number, full_path=path, action=action
                )
            )
        return files

    def materialize_to_temp_file(
        self, file_in_revision: FileInRevision
    ) -> TempFile:
        """Extract one historical version with ``hg cat``.

        A file deleted in a revision no longer exists there, so its last
        content is read from the revision's first parent instead.
        """
        rev = file_in_revision.revision_number
        if rev is None:
            raise BackendError(
                "cat", f"{file_in_revision.full_path} has no revision"
            )
        if file_in_revision.action == FileAction.DELETED:
            rev = f"p1({rev})"

        temp = TempFile.with_extension_of(file_in_revision.full_path)
        try:
            self._run(
                "cat",
                "-r",
                rev,
                "-o",
                str(temp.path),
                file_in_revision.full_path,
            )
        except BaseException:
            temp.release()
            raise
        return temp

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get_revision(self, spec: str) -> Revision:
        """Return the revision matching an hg revision *spec*."""
        out = self._run(
            "log",
            "-r",
            spec,
            "-l",
            "1",
            "--template",
            _FIELD_SEP.join(["{rev}", "{node}", "{author}", "{desc}"]),
        )
        fields = out.split(_FIELD_SEP, 3)
        if len(fields) != 4:
            raise BackendError("log", f"no revision matches '{spec}'")
        rev, node, author, desc = fields
        return Revision(
            self,
            RevisionNumber(local_revision_number=rev, hash=node),
            summary=desc,
            user=author,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _rev_spec(revision: Revision) -> str:
        return revision.number.hash or revision.number.local_revision_number

    def _run(self, *args: str) -> str:
        """Run one hg command in the working copy and return its stdout."""
        command = [self._hg, *args]
        logger.debug("Running %s in %s", " ".join(command), self._path_to_repo)
        env = {**os.environ, "HGPLAIN": "1"}
        try:
            result = subprocess.run(
                command,
                cwd=self._path_to_repo,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=env,
            )
        except FileNotFoundError as exc:
            raise BackendError(args[0], f"{self._hg} not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise BackendError(
                args[0], f"timed out after {self._timeout}s"
            ) from exc

        if result.returncode != 0:
            raise BackendError(
                args[0], result.stderr.strip() or f"exit {result.returncode}"
            )
        return result.stdout
