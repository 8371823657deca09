"""Annotation stores and their session-wide cache."""

from .cache import AnnotationRepositoryCache
from .repository import (
    CONFLICT_CLASS,
    DEFAULT_EXTENSION,
    Annotation,
    AnnotationRepository,
    Message,
    new_annotation,
)

__all__ = [
    "CONFLICT_CLASS",
    "DEFAULT_EXTENSION",
    "Annotation",
    "AnnotationRepository",
    "AnnotationRepositoryCache",
    "Message",
    "new_annotation",
]
