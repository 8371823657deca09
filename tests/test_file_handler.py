"""Tests for file_handler module: encoding-aware reads and atomic writes."""

import os
from unittest.mock import MagicMock, patch

import pytest

from lexsync.file_handler import (
    atomic_write_bytes,
    atomic_write_text,
    decode_versions,
    read_file_with_encoding,
    read_text,
)

# =============================================================================
# read_file_with_encoding
# =============================================================================


class TestReadFileWithEncoding:
    """Tests for read_file_with_encoding(path)."""

    def test_utf8_file(self, tmp_path):
        f = tmp_path / "words.txt"
        f.write_text("akwa: bed\nàkwà: cry", encoding="utf-8")

        content, encoding = read_file_with_encoding(f)

        assert content == "akwa: bed\nàkwà: cry"
        assert encoding == "utf-8"

    def test_ascii_reported_as_utf8(self, tmp_path):
        f = tmp_path / "plain.txt"
        f.write_bytes(b"plain ascii text")

        assert read_file_with_encoding(f) == ("plain ascii text", "utf-8")

    def test_empty_file(self, tmp_path):
        f = tmp_path / "empty.txt"
        f.write_bytes(b"")

        assert read_file_with_encoding(f) == ("", "utf-8")

    def test_non_utf8_file(self, tmp_path):
        """Legacy-encoded history files still decode to readable text."""
        f = tmp_path / "latin1.txt"
        f.write_bytes(
            "Café résumé naïve üöä".encode(
                "latin-1"
            )
        )

        content, encoding = read_file_with_encoding(f)

        assert "Caf" in content
        assert isinstance(encoding, str)

    def test_read_text_drops_encoding(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_text("hello", encoding="utf-8")

        assert read_text(f) == "hello"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_text(tmp_path / "missing.txt")


# =============================================================================
# decode_versions
# =============================================================================


class TestDecodeVersions:
    """Tests for decode_versions(versions)."""

    def test_utf8_versions(self):
        texts, encoding = decode_versions(
            ["àkwà\n".encode(), "àkwà\nbed\n".encode()]
        )

        assert texts == ["àkwà\n", "àkwà\nbed\n"]
        assert encoding == "utf-8"

    def test_legacy_versions_share_one_encoding(self):
        raw = [
            "café naïve…\nsecond line\n".encode("cp1252"),
            "header été\ncafé naïve…\nsecond line\n".encode("cp1252"),
        ]

        texts, encoding = decode_versions(raw)

        assert encoding != "utf-8"
        assert [t.encode(encoding) for t in texts] == raw
        assert texts[1].endswith(texts[0])

    def test_no_detected_encoding_raises(self):
        with patch("lexsync.file_handler.from_bytes") as mock_detect:
            mock_detect.return_value.best.return_value = None
            with pytest.raises(UnicodeError):
                decode_versions([b"\xff\xfe\x00"])

    def test_version_not_decodable_with_shared_guess_raises(self):
        guess = MagicMock(encoding="ascii")
        with patch("lexsync.file_handler.from_bytes") as mock_detect:
            mock_detect.return_value.best.return_value = guess
            with pytest.raises(UnicodeError, match="ascii"):
                decode_versions([b"plain\n", b"caf\xe9\n"])


# =============================================================================
# atomic writes
# =============================================================================


class TestAtomicWrite:
    """Tests for atomic_write_bytes() and atomic_write_text()."""

    def test_write_bytes(self, tmp_path):
        f = tmp_path / "dict.lift"

        count = atomic_write_bytes(f, b"<lift/>")

        assert f.read_bytes() == b"<lift/>"
        assert count == 7

    def test_replaces_existing_content(self, tmp_path):
        f = tmp_path / "dict.lift"
        f.write_bytes(b"old content that is longer")

        atomic_write_bytes(f, b"new")

        assert f.read_bytes() == b"new"

    def test_creates_parent_directories(self, tmp_path):
        f = tmp_path / "sub" / "deep" / "out.txt"

        atomic_write_text(f, "nested")

        assert f.read_text(encoding="utf-8") == "nested"

    def test_write_text_with_encoding(self, tmp_path):
        f = tmp_path / "latin.txt"

        count = atomic_write_text(f, "Café", encoding="latin-1")

        assert f.read_bytes() == "Café".encode("latin-1")
        assert count == 4

    def test_no_temp_files_left_behind(self, tmp_path):
        atomic_write_text(tmp_path / "a.txt", "x")

        assert sorted(os.listdir(tmp_path)) == ["a.txt"]

    def test_failed_replace_keeps_original_and_cleans_up(self, tmp_path):
        f = tmp_path / "dict.lift"
        f.write_bytes(b"original")

        with patch(
            "lexsync.file_handler.os.replace", side_effect=OSError("disk full")
        ):
            with pytest.raises(OSError, match="disk full"):
                atomic_write_bytes(f, b"merged")

        assert f.read_bytes() == b"original"
        assert sorted(os.listdir(tmp_path)) == ["dict.lift"]
