"""XML dictionary handler (LIFT-style ``<entry id=...>`` documents).

Diffs and merges are per entry, keyed by the entry's ``id`` (or ``guid``
when an entry has no id). Entries are compared by canonical XML with the
``dateModified`` stamp removed, so re-saving an unchanged entry is not a
change. An entry carrying ``dateDeleted`` counts as deleted.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from lxml import etree

from lexsync.errors import MergeFailure
from lexsync.file_handler import atomic_write_bytes
from lexsync.merge.models import (
    ChangeReport,
    ConflictHandlingMode,
    FileInRevision,
    MergeOrder,
    ReportKind,
)

from .base import ExtensionHandler, initial_kind, read_bytes_pair

if TYPE_CHECKING:
    from lexsync.vcs.backend import RepositoryBackend
    from lexsync.vcs.models import TempFile

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(
    remove_blank_text=True, resolve_entities=False, no_network=True
)

Entries = dict[str, etree._Element]


def parse_entries(data: bytes) -> tuple[etree._Element, Entries]:
    """Parse a dictionary document and index its entries by key.

    Raises:
        lxml.etree.XMLSyntaxError: If *data* is not well-formed XML.
    """
    root = etree.fromstring(data, parser=_PARSER)
    entries: Entries = {}
    for entry in root.iterchildren("entry"):
        key = entry_key(entry)
        if key is not None:
            entries[key] = entry
    return root, entries


def entry_key(entry: etree._Element) -> str | None:
    return entry.get("id") or entry.get("guid")


def entry_label(entry: etree._Element) -> str:
    """Headword of an entry, falling back to its key."""
    headword = entry.findtext("lexical-unit/form/text")
    if headword and headword.strip():
        return headword.strip()
    return entry_key(entry) or "(unnamed entry)"


def entry_signature(entry: etree._Element) -> bytes:
    clone = copy.deepcopy(entry)
    clone.attrib.pop("dateModified", None)
    return etree.tostring(clone, method="c14n")


def is_deleted(entry: etree._Element) -> bool:
    return entry.get("dateDeleted") is not None


def _same(a: etree._Element | None, b: etree._Element | None) -> bool:
    if a is None or b is None:
        return a is b
    return entry_signature(a) == entry_signature(b)


class DictionaryFileHandler(ExtensionHandler):
    """Handle XML dictionaries entry by entry."""

    def __init__(self, extensions: tuple[str, ...] = (".lift",)) -> None:
        super().__init__(extensions)

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    def find_two_way_differences(
        self,
        parent: FileInRevision,
        child: FileInRevision,
        backend: RepositoryBackend,
    ) -> Iterator[ChangeReport]:
        parent_data, child_data = read_bytes_pair(parent, child, backend)
        _, before = parse_entries(parent_data)
        _, after = parse_entries(child_data)

        def report(
            kind: ReportKind, label: str, entry: etree._Element
        ) -> ChangeReport:
            return ChangeReport(
                kind=kind,
                action_label=label,
                child=child,
                parent=parent,
                data_label=entry_label(entry),
            )

        for key, entry in after.items():
            old = before.get(key)
            if old is None:
                if not is_deleted(entry):
                    yield report(ReportKind.ADDED, "Added", entry)
            elif is_deleted(entry) and not is_deleted(old):
                yield report(ReportKind.DELETED, "Deleted", old)
            elif not _same(old, entry):
                yield report(ReportKind.CHANGED, "Edited", entry)

        for key, old in before.items():
            if key not in after and not is_deleted(old):
                yield report(ReportKind.DELETED, "Deleted", old)

    def describe_initial_contents(
        self, file_in_revision: FileInRevision, temp_file: TempFile
    ) -> Iterator[ChangeReport]:
        kind, label = initial_kind(file_in_revision)
        _, entries = parse_entries(temp_file.path.read_bytes())
        for entry in entries.values():
            if is_deleted(entry):
                continue
            yield ChangeReport(
                kind=kind,
                action_label=label,
                child=file_in_revision,
                data_label=entry_label(entry),
            )

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def do_three_way_merge(self, merge_order: MergeOrder) -> None:
        try:
            _, ancestor = self._load(
                merge_order.path_to_common_ancestor, allow_empty=True
            )
            our_root, ours = self._load(merge_order.path_to_ours)
            _, theirs = self._load(merge_order.path_to_theirs)
        except (OSError, etree.XMLSyntaxError) as exc:
            raise MergeFailure(merge_order.path_to_ours, str(exc)) from exc

        our_label = merge_order.our_label
        their_label = merge_order.their_label
        merged: list[etree._Element] = []

        for key, mine in ours.items():
            base = ancestor.get(key)
            other = theirs.get(key)
            if other is None:
                if base is not None and _same(base, mine):
                    continue
                if base is not None:
                    merge_order.record_conflict(
                        entry_label(mine),
                        f"{their_label} removed this entry, which "
                        f"{our_label} edited; kept the edited entry",
                    )
                merged.append(mine)
                continue
            merged.append(self._merge_entry(base, mine, other, merge_order))

        for key, other in theirs.items():
            if key in ours:
                continue
            base = ancestor.get(key)
            if base is None:
                merged.append(other)
            elif not _same(base, other):
                merge_order.record_conflict(
                    entry_label(other),
                    f"{our_label} removed this entry, which "
                    f"{their_label} edited; kept the edited entry",
                )
                merged.append(other)

        result = copy.deepcopy(our_root)
        for entry in list(result.iterchildren("entry")):
            if entry_key(entry) is not None:
                result.remove(entry)
        for entry in merged:
            result.append(copy.deepcopy(entry))

        atomic_write_bytes(
            Path(merge_order.path_to_ours),
            etree.tostring(
                result,
                xml_declaration=True,
                encoding="utf-8",
                pretty_print=True,
            ),
        )
        logger.info(
            "Merged %d entries into %s (%d conflict(s))",
            len(merged),
            merge_order.path_to_ours,
            len(merge_order.listener),
        )

    @staticmethod
    def _merge_entry(
        base: etree._Element | None,
        mine: etree._Element,
        other: etree._Element,
        merge_order: MergeOrder,
    ) -> etree._Element:
        if _same(mine, other):
            return mine
        if base is not None and _same(base, mine):
            return other
        if base is not None and _same(base, other):
            return mine

        merge_order.record_conflict(
            entry_label(mine),
            f"Both {merge_order.our_label} and {merge_order.their_label} "
            f"edited this entry; kept {merge_order.winner_label}'s version",
        )
        if merge_order.mode == ConflictHandlingMode.WE_WIN:
            return mine
        return other

    @staticmethod
    def _load(
        path: str, allow_empty: bool = False
    ) -> tuple[etree._Element | None, Entries]:
        data = Path(path).read_bytes()
        if allow_empty and not data.strip():
            return None, {}
        return parse_entries(data)
