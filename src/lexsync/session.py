"""Composition root tying backend, handlers, inspector and notes together.

A ``LexSyncSession`` owns every long-lived collaborator explicitly:

- ``backend``: the Mercurial working copy at the project root.
- ``registry``: installed format handlers, in priority order.
- ``inspector``: describes revisions using the two above.
- ``notes``: one annotation store per annotated file, shared by merges.

Nothing here is global; callers create a session per project and close it
when done (or use it as a context manager).
"""

from __future__ import annotations

import logging
from pathlib import Path

from lexsync.config import Config
from lexsync.core.async_utils import run_sync
from lexsync.merge.models import ChangeReport, Conflict, MergeOrder
from lexsync.merge.registry import HandlerRegistry
from lexsync.notes import (
    CONFLICT_CLASS,
    AnnotationRepository,
    AnnotationRepositoryCache,
    new_annotation,
)
from lexsync.retrieval import RevisionInspector
from lexsync.vcs import HgRepository, Revision

logger = logging.getLogger(__name__)


class LexSyncSession:
    """Everything needed to inspect and merge one project.

    Args:
        config: Validated runtime configuration.
        backend: Optional backend replacing the default ``HgRepository``.
    """

    def __init__(
        self, config: Config, backend: HgRepository | None = None
    ) -> None:
        self.config = config
        self.backend = backend or HgRepository(
            config.project_root, hg=config.hg
        )
        self.registry = HandlerRegistry.create_with_installed_handlers(config)
        self.inspector = RevisionInspector(self.backend, self.registry)
        self.notes = AnnotationRepositoryCache(
            config.project_root, config.notes_extension
        )

    def __enter__(self) -> LexSyncSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_revision(self, spec: str) -> Revision:
        """Look up a revision by backend revision spec (number, hash...)."""
        return self.backend.get_revision(spec)

    def get_change_records(self, revision: Revision) -> list[ChangeReport]:
        return self.inspector.get_change_records(revision)

    async def get_change_records_async(
        self, revision: Revision
    ) -> list[ChangeReport]:
        return await self.inspector.get_change_records_async(revision)

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------

    def get_notes_repository(
        self, annotated_file: str | Path
    ) -> AnnotationRepository:
        """Return the annotation store for *annotated_file*.

        Raises:
            PreconditionError: If *annotated_file* does not exist.
        """
        return self.notes.get_repository(annotated_file)

    def ensure_all_notes_repositories_loaded(self) -> None:
        self.notes.ensure_all_loaded()

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge(self, merge_order: MergeOrder) -> list[Conflict]:
        """Run a three-way merge and record its conflicts as annotations.

        The handler is chosen by the path of our side. Every conflict the
        handler reports becomes a ``conflict`` annotation in the store next
        to ``merge_order.path_to_ours``.

        Returns:
            Conflicts found during this merge, in the order reported.

        Raises:
            MergeFailure: If the handler could not produce a merged file.
        """
        handler = self.registry.resolve(merge_order.path_to_ours)
        logger.info(
            "Merging %s with %s",
            merge_order.path_to_ours,
            type(handler).__name__,
        )
        handler.do_three_way_merge(merge_order)

        conflicts = list(merge_order.listener.conflicts)
        if conflicts:
            self._record_conflicts(merge_order.path_to_ours, conflicts)
        return conflicts

    async def merge_async(self, merge_order: MergeOrder) -> list[Conflict]:
        """Async variant of ``merge()``."""
        return await run_sync(self.merge, merge_order)

    def _record_conflicts(
        self, path_to_ours: str, conflicts: list[Conflict]
    ) -> None:
        repo = self.notes.get_repository(path_to_ours)
        for conflict in conflicts:
            repo.add_annotation(
                new_annotation(
                    CONFLICT_CLASS,
                    conflict.data_label,
                    self.config.user,
                    conflict.description,
                )
            )
        repo.save()
        logger.info(
            "Recorded %d conflict(s) in %s",
            len(conflicts),
            repo.annotation_file_path,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Save and release every annotation store held by the session."""
        self.notes.close()
