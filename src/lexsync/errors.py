"""Error types shared across lexsync modules."""

from __future__ import annotations


class LexSyncError(Exception):
    """Base error for lexsync operations."""

    pass


class PreconditionError(LexSyncError, ValueError):
    """A caller-supplied argument violates a documented precondition."""

    pass


class BackendError(LexSyncError):
    """The version-control backend could not complete a request."""

    def __init__(self, command: str, message: str) -> None:
        super().__init__(f"Backend command failed ({command}): {message}")
        self.command = command


class ContainedRetrievalError(LexSyncError):
    """A single file's historical version could not be retrieved or diffed.

    Never raised out of the revision inspector; it is carried as the error
    value of a per-file dispatch and turned into an error report.
    """

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message


class InvariantViolation(LexSyncError, AssertionError):
    """A value outside a closed, exhaustively known set was encountered."""

    pass


class MergeFailure(LexSyncError):
    """A three-way merge could not produce any usable output.

    Distinct from a merge that succeeded with recorded conflicts.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Merge of {path} failed: {reason}")
        self.path = path
        self.reason = reason
