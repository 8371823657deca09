"""Revision inspection: what changed in a revision, per file format."""

from .inspector import CheckinKind, DispatchOutcome, RevisionInspector, classify

__all__ = ["CheckinKind", "DispatchOutcome", "RevisionInspector", "classify"]
