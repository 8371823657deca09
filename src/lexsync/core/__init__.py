"""Core utilities shared by lexsync entry points."""

from .async_utils import run_sync

__all__ = ["run_sync"]
