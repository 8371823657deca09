"""Session-wide cache of annotation stores.

Holds exactly one live ``AnnotationRepository`` per annotation file, so
callers can rely on repository identity implying the same store. Entries
are created on first access and never evicted; ``close()`` releases them
all together when the owning session ends.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from lexsync.errors import PreconditionError

from .repository import DEFAULT_EXTENSION, AnnotationRepository

logger = logging.getLogger(__name__)


class AnnotationRepositoryCache:
    """Lazily loaded map from annotation file path to repository.

    All check-then-insert sequences run under one lock, so the cache may
    be shared between threads.

    Args:
        project_root: Folder scanned by ``ensure_all_loaded()``. Relative
            annotated file paths are taken relative to it.
        extension: Suffix appended to an annotated file's path to locate
            its store.
    """

    def __init__(
        self, project_root: str | Path, extension: str = DEFAULT_EXTENSION
    ) -> None:
        self.project_root = Path(project_root)
        self.extension = extension.lstrip(".")
        self._repositories: dict[str, AnnotationRepository] = {}
        self._searched_all = False
        self._lock = threading.Lock()

    def __enter__(self) -> AnnotationRepositoryCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _locate(self, annotated_file: str | Path) -> Path:
        path = Path(annotated_file)
        if not path.is_absolute():
            path = self.project_root / path
        return path

    def annotation_path_for(self, annotated_file: str | Path) -> str:
        """Cache key for the store annotating *annotated_file*."""
        path = self._locate(annotated_file)
        return str(Path(f"{path}.{self.extension}").resolve())

    def get_repository(
        self, annotated_file: str | Path
    ) -> AnnotationRepository:
        """Return the store for *annotated_file*, loading or creating it.

        Raises:
            PreconditionError: If *annotated_file* does not exist.
        """
        path = self._locate(annotated_file)
        if not path.is_file():
            raise PreconditionError(f"Annotated file not found: {path}")
        key = self.annotation_path_for(path)
        with self._lock:
            repo = self._repositories.get(key)
            if repo is None:
                repo = AnnotationRepository.from_file(key)
                self._repositories[key] = repo
            return repo

    def ensure_all_loaded(self) -> None:
        """Load every store under the project root, once per cache."""
        with self._lock:
            if self._searched_all:
                return
            found = AnnotationRepository.create_repositories_from_folder(
                self.project_root, self.extension
            )
            added = 0
            for repo in found:
                key = repo.annotation_file_path
                if key not in self._repositories:
                    self._repositories[key] = repo
                    added += 1
            self._searched_all = True
        logger.debug(
            "Loaded %d annotation store(s) under %s", added, self.project_root
        )

    @property
    def repositories(self) -> list[AnnotationRepository]:
        with self._lock:
            return list(self._repositories.values())

    def close(self) -> None:
        """Close every cached store and empty the cache."""
        with self._lock:
            repositories = list(self._repositories.values())
            self._repositories.clear()
            self._searched_all = False
        for repo in repositories:
            repo.close()
