"""Change reports, format handlers and the handler registry."""

from .models import (
    ChangePresenter,
    ChangeReport,
    Conflict,
    ConflictHandlingMode,
    ConflictListener,
    FileAction,
    FileInRevision,
    MergeOrder,
    ReportKind,
)
from .registry import HandlerRegistry

__all__ = [
    "ChangePresenter",
    "ChangeReport",
    "Conflict",
    "ConflictHandlingMode",
    "ConflictListener",
    "FileAction",
    "FileInRevision",
    "HandlerRegistry",
    "MergeOrder",
    "ReportKind",
]
