"""Installed file-format handlers."""

from .base import ExtensionHandler, FormatHandler
from .conflict import ConflictFileHandler
from .default import DefaultFileHandler
from .dictionary import DictionaryFileHandler
from .project_config import ProjectConfigFileHandler
from .text import TextFileHandler

__all__ = [
    "ConflictFileHandler",
    "DefaultFileHandler",
    "DictionaryFileHandler",
    "ExtensionHandler",
    "FormatHandler",
    "ProjectConfigFileHandler",
    "TextFileHandler",
]
