"""Async utilities for bridging blocking backend calls to async callers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Backend commands and per-file dispatches block on subprocesses and
    disk I/O; wrapping each one separately lets the enclosing task be
    cancelled between them.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        revision = await run_sync(repository.get_revision, "tip")
    """
    return await asyncio.to_thread(func, *args, **kwargs)
