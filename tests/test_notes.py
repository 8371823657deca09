"""Tests for notes/repository.py and notes/cache.py."""

from __future__ import annotations

import re
import threading

import pytest
from lxml import etree

from lexsync.errors import PreconditionError
from lexsync.notes import (
    AnnotationRepository,
    AnnotationRepositoryCache,
    new_annotation,
)
from lexsync.notes.repository import parse_annotations, serialize_annotations

# ---------------------------------------------------------------------------
# Store format
# ---------------------------------------------------------------------------


class TestStoreFormat:
    def test_serialize_then_parse_preserves_threads(self):
        annotation = new_annotation("conflict", "apple", "alice", "both edited")

        parsed = parse_annotations(serialize_annotations([annotation]))

        assert parsed == [annotation]
        assert parsed[0].is_conflict

    def test_empty_input_has_no_annotations(self):
        assert parse_annotations(b"") == []

    def test_malformed_input_raises(self):
        with pytest.raises(etree.XMLSyntaxError):
            parse_annotations(b"<notes><annotation")

    def test_missing_attributes_get_defaults(self):
        parsed = parse_annotations(
            b'<notes version="0"><annotation guid="g"/></notes>'
        )

        assert parsed[0].class_name == "note"
        assert parsed[0].messages == ()


# ---------------------------------------------------------------------------
# AnnotationRepository
# ---------------------------------------------------------------------------


class TestAnnotationRepository:
    def test_from_file_creates_missing_store(self, tmp_path):
        path = tmp_path / "dict.lift.lexnotes"

        repo = AnnotationRepository.from_file(path)

        assert path.exists()
        assert repo.annotations == ()
        assert repo.annotation_file_path == str(path.resolve())

    def test_add_and_save(self, tmp_path):
        path = tmp_path / "dict.lift.lexnotes"
        repo = AnnotationRepository.from_file(path)

        repo.add_annotation(new_annotation("conflict", "apple", "a", "x"))
        repo.add_annotation(new_annotation("question", "pear", "a", "y"))
        repo.save()

        reloaded = AnnotationRepository.from_file(path)
        assert [a.ref for a in reloaded.annotations] == ["apple", "pear"]
        assert [a.ref for a in reloaded.conflict_annotations] == ["apple"]

    def test_close_saves_and_rejects_further_changes(self, tmp_path):
        path = tmp_path / "a.txt.lexnotes"
        repo = AnnotationRepository.from_file(path)
        repo.add_annotation(new_annotation("note", "a", "a", "x"))

        repo.close()

        assert len(parse_annotations(path.read_bytes())) == 1
        with pytest.raises(ValueError, match="closed"):
            repo.add_annotation(new_annotation("note", "b", "a", "y"))

    def test_create_repositories_from_folder_skips_hidden(self, tmp_path):
        (tmp_path / "words").mkdir()
        (tmp_path / ".hg").mkdir()
        (tmp_path / "a.lift.lexnotes").write_bytes(serialize_annotations([]))
        (tmp_path / "words" / "b.txt.lexnotes").write_bytes(b"")
        (tmp_path / ".hg" / "c.lexnotes").write_bytes(b"")

        repos = AnnotationRepository.create_repositories_from_folder(tmp_path)

        names = sorted(r.annotation_file_path for r in repos)
        assert names == sorted(
            [
                str((tmp_path / "a.lift.lexnotes").resolve()),
                str((tmp_path / "words" / "b.txt.lexnotes").resolve()),
            ]
        )


# ---------------------------------------------------------------------------
# AnnotationRepositoryCache
# ---------------------------------------------------------------------------


@pytest.fixture
def annotated(tmp_path):
    path = tmp_path / "dict.lift"
    path.write_text("<lift/>", encoding="utf-8")
    return path


class TestAnnotationRepositoryCache:
    def test_missing_annotated_file_is_precondition_error(self, tmp_path):
        cache = AnnotationRepositoryCache(tmp_path)

        with pytest.raises(PreconditionError):
            cache.get_repository(tmp_path / "missing.lift")

    def test_precondition_error_is_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            AnnotationRepositoryCache(tmp_path).get_repository(
                tmp_path / "missing.lift"
            )

    def test_one_repository_per_store(self, annotated, tmp_path):
        cache = AnnotationRepositoryCache(tmp_path)

        first = cache.get_repository(annotated)
        second = cache.get_repository(str(annotated))
        third = cache.get_repository(tmp_path / "." / "dict.lift")

        assert first is second is third
        assert (tmp_path / "dict.lift.lexnotes").exists()

    def test_relative_path_is_taken_from_project_root(
        self, annotated, tmp_path, monkeypatch
    ):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)
        cache = AnnotationRepositoryCache(tmp_path)

        repo = cache.get_repository("dict.lift")

        assert repo is cache.get_repository(annotated)
        assert repo.annotation_file_path == str(
            (tmp_path / "dict.lift.lexnotes").resolve()
        )
        assert not (elsewhere / "dict.lift.lexnotes").exists()

    def test_relative_missing_file_reports_project_path(
        self, tmp_path, monkeypatch
    ):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "dict.lift").write_text("<lift/>")
        cache = AnnotationRepositoryCache(tmp_path / "project")

        missing = re.escape(str(tmp_path / "project" / "dict.lift"))
        with pytest.raises(PreconditionError, match=missing):
            cache.get_repository("dict.lift")

    def test_extension_is_configurable(self, annotated, tmp_path):
        cache = AnnotationRepositoryCache(tmp_path, ".notes")

        repo = cache.get_repository(annotated)

        assert repo.annotation_file_path.endswith("dict.lift.notes")

    def test_ensure_all_loaded_keeps_existing_instances(
        self, annotated, tmp_path
    ):
        (tmp_path / "other.txt.lexnotes").write_bytes(b"")
        cache = AnnotationRepositoryCache(tmp_path)
        existing = cache.get_repository(annotated)

        cache.ensure_all_loaded()

        repos = cache.repositories
        assert len(repos) == 2
        assert existing in repos
        assert cache.get_repository(annotated) is existing

    def test_ensure_all_loaded_runs_once(self, tmp_path, monkeypatch):
        calls = []
        original = AnnotationRepository.create_repositories_from_folder

        def counting(root, extension):
            calls.append(root)
            return original(root, extension)

        monkeypatch.setattr(
            AnnotationRepository,
            "create_repositories_from_folder",
            staticmethod(counting),
        )
        cache = AnnotationRepositoryCache(tmp_path)

        cache.ensure_all_loaded()
        cache.ensure_all_loaded()

        assert len(calls) == 1

    def test_concurrent_lookups_share_one_instance(self, annotated, tmp_path):
        cache = AnnotationRepositoryCache(tmp_path)
        results = []

        def lookup():
            results.append(cache.get_repository(annotated))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(r) for r in results}) == 1

    def test_close_releases_everything(self, annotated, tmp_path):
        with AnnotationRepositoryCache(tmp_path) as cache:
            repo = cache.get_repository(annotated)
            repo.add_annotation(new_annotation("note", "x", "a", "hello"))

        assert repo.closed
        assert cache.repositories == []
        saved = parse_annotations(
            (tmp_path / "dict.lift.lexnotes").read_bytes()
        )
        assert [a.ref for a in saved] == ["x"]
