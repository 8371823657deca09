"""Annotation store: notes and conflict records attached to one file.

Each annotated file ``<path>`` has at most one store at
``<path>.<extension>``, an XML document::

    <notes version="0">
      <annotation class="conflict" ref="..." guid="...">
        <message author="..." status="open" date="..." guid="...">text</message>
      </annotation>
    </notes>
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from lxml import etree
from pydantic import BaseModel

from lexsync.file_handler import atomic_write_bytes

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "lexnotes"
CONFLICT_CLASS = "conflict"

_PARSER = etree.XMLParser(
    remove_blank_text=True, resolve_entities=False, no_network=True
)


class Message(BaseModel):
    """One message in an annotation's thread."""

    guid: str
    author: str
    date: str
    status: str = "open"
    text: str = ""

    model_config = {"frozen": True}


class Annotation(BaseModel):
    """A thread of messages about one referenced item.

    Attributes:
        guid: Stable identity used when merging stores.
        class_name: ``"conflict"``, ``"question"``, ``"note"``...
        ref: What the annotation is about (e.g. an entry label).
        messages: The thread, oldest first.
    """

    guid: str
    class_name: str
    ref: str = ""
    messages: tuple[Message, ...] = ()

    model_config = {"frozen": True}

    @property
    def is_conflict(self) -> bool:
        return self.class_name == CONFLICT_CLASS

    @property
    def text(self) -> str:
        return "\n".join(m.text for m in self.messages if m.text)


def new_annotation(
    class_name: str, ref: str, author: str, text: str
) -> Annotation:
    """Create an annotation with a single opening message."""
    return Annotation(
        guid=str(uuid.uuid4()),
        class_name=class_name,
        ref=ref,
        messages=(
            Message(
                guid=str(uuid.uuid4()),
                author=author,
                date=datetime.now(timezone.utc).isoformat(),
                text=text,
            ),
        ),
    )


# ---------------------------------------------------------------------------
# XML (de)serialisation
# ---------------------------------------------------------------------------


def parse_annotations(data: bytes) -> list[Annotation]:
    """Parse a store document. Empty input yields no annotations.

    Raises:
        lxml.etree.XMLSyntaxError: If *data* is not well-formed XML.
    """
    if not data.strip():
        return []
    root = etree.fromstring(data, parser=_PARSER)
    annotations = []
    for node in root.iterchildren("annotation"):
        messages = tuple(
            Message(
                guid=m.get("guid", ""),
                author=m.get("author", ""),
                date=m.get("date", ""),
                status=m.get("status", "open"),
                text=m.text or "",
            )
            for m in node.iterchildren("message")
        )
        annotations.append(
            Annotation(
                guid=node.get("guid", ""),
                class_name=node.get("class", "note"),
                ref=node.get("ref", ""),
                messages=messages,
            )
        )
    return annotations


def serialize_annotations(annotations: Iterable[Annotation]) -> bytes:
    root = etree.Element("notes", version="0")
    for annotation in annotations:
        node = etree.SubElement(
            root,
            "annotation",
            {
                "class": annotation.class_name,
                "ref": annotation.ref,
                "guid": annotation.guid,
            },
        )
        for message in annotation.messages:
            m = etree.SubElement(
                node,
                "message",
                author=message.author,
                status=message.status,
                date=message.date,
                guid=message.guid,
            )
            m.text = message.text
    return etree.tostring(
        root, xml_declaration=True, encoding="utf-8", pretty_print=True
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AnnotationRepository:
    """In-memory view of one annotation store file.

    Use ``from_file()`` to load or create a store. Changes are kept in
    memory until ``save()``; ``close()`` saves pending changes and
    releases the repository.
    """

    def __init__(
        self, annotation_file_path: Path, annotations: list[Annotation]
    ) -> None:
        self._path = annotation_file_path
        self._annotations = annotations
        self._dirty = False
        self.closed = False

    @classmethod
    def from_file(cls, annotation_file_path: str | Path) -> AnnotationRepository:
        """Load the store at *annotation_file_path*, creating it if missing."""
        path = Path(annotation_file_path).resolve()
        if path.exists():
            annotations = parse_annotations(path.read_bytes())
            logger.debug(
                "Loaded %d annotation(s) from %s", len(annotations), path
            )
            return cls(path, annotations)

        repo = cls(path, [])
        repo._dirty = True
        repo.save()
        logger.info("Created annotation store %s", path)
        return repo

    @staticmethod
    def create_repositories_from_folder(
        root: str | Path, extension: str = DEFAULT_EXTENSION
    ) -> list[AnnotationRepository]:
        """Load every store under *root*, skipping hidden directories."""
        base = Path(root)
        repos = []
        for path in sorted(base.rglob(f"*.{extension}")):
            relative = path.relative_to(base)
            if any(part.startswith(".") for part in relative.parts[:-1]):
                continue
            repos.append(AnnotationRepository.from_file(path))
        return repos

    @property
    def annotation_file_path(self) -> str:
        return str(self._path)

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        return tuple(self._annotations)

    @property
    def conflict_annotations(self) -> tuple[Annotation, ...]:
        return tuple(a for a in self._annotations if a.is_conflict)

    def add_annotation(self, annotation: Annotation) -> None:
        if self.closed:
            raise ValueError(f"Annotation store is closed: {self._path}")
        self._annotations.append(annotation)
        self._dirty = True

    def save(self) -> None:
        if not self._dirty:
            return
        atomic_write_bytes(self._path, serialize_annotations(self._annotations))
        self._dirty = False

    def close(self) -> None:
        if self.closed:
            return
        self.save()
        self.closed = True
