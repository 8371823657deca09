"""Version-control backend contract and the Mercurial adapter."""

from .backend import RepositoryBackend
from .hg import HgRepository
from .models import Revision, RevisionNumber, TempFile

__all__ = [
    "HgRepository",
    "RepositoryBackend",
    "Revision",
    "RevisionNumber",
    "TempFile",
]
