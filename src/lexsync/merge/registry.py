"""Ordered registry resolving a file path to its format handler.

Registration order is a priority list: more specific formats come before
generic ones, and the first handler claiming a path wins. The default
handler is held apart from the scanned list so that it can never mask a
specific handler, whatever order handlers are registered in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .handlers import (
    ConflictFileHandler,
    DefaultFileHandler,
    DictionaryFileHandler,
    FormatHandler,
    ProjectConfigFileHandler,
    TextFileHandler,
)

if TYPE_CHECKING:
    from lexsync.config import Config

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Immutable, ordered collection of format handlers plus a fallback.

    Args:
        handlers: Handlers in priority order. A ``DefaultFileHandler`` in
            this sequence is rejected.
    """

    def __init__(self, handlers: Iterable[FormatHandler]) -> None:
        handlers = tuple(handlers)
        for handler in handlers:
            if isinstance(handler, DefaultFileHandler):
                raise ValueError(
                    "The default handler is implicit and must not be registered"
                )
        self._handlers = handlers
        self._default = DefaultFileHandler()

    @classmethod
    def create_with_installed_handlers(
        cls, config: Config | None = None
    ) -> HandlerRegistry:
        """Build the registry of every handler shipped with lexsync."""
        if config is None:
            return cls(
                [
                    DictionaryFileHandler(),
                    TextFileHandler(),
                    ConflictFileHandler(),
                    ProjectConfigFileHandler(),
                ]
            )
        return cls(
            [
                DictionaryFileHandler(config.dictionary_extensions),
                TextFileHandler(config.text_extensions),
                ConflictFileHandler(config.notes_extension),
                ProjectConfigFileHandler(config.project_config_extensions),
            ]
        )

    @property
    def handlers(self) -> tuple[FormatHandler, ...]:
        return self._handlers

    @property
    def default_handler(self) -> DefaultFileHandler:
        return self._default

    def resolve(self, path: str) -> FormatHandler:
        """Return the first handler claiming *path*, else the default."""
        for handler in self._handlers:
            if handler.can_handle(path):
                return handler
        logger.debug("No handler claims %s; using default", path)
        return self._default

    def is_default(self, handler: FormatHandler) -> bool:
        return handler is self._default
