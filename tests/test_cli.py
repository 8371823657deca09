"""Tests for the ``lexsync`` and ``lexsync-merge`` entry points."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from helpers import fir

from lexsync.cli import main as cli_main
from lexsync.cli import merge_driver
from lexsync.config import Config
from lexsync.config_schema import UnifiedConfig
from lexsync.errors import BackendError
from lexsync.merge.models import ChangeReport, ReportKind
from lexsync.merge.registry import HandlerRegistry
from lexsync.notes import AnnotationRepository, new_annotation
from lexsync.notes.repository import parse_annotations

_ENV_VARS = (
    "LEXSYNC_CONFIG",
    "LEXSYNC_PROJECT_ROOT",
    "LEXSYNC_HG",
    "LEXSYNC_NOTES_EXTENSION",
    "LEXSYNC_USER",
    "LEXSYNC_DEBUG",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return tmp_path


@pytest.fixture
def no_logging():
    with patch("lexsync.cli.main.setup_logging") as cli_setup, patch(
        "lexsync.cli.merge_driver.setup_logging"
    ) as driver_setup:
        yield cli_setup, driver_setup


def _fake_session(reports=None):
    revision = MagicMock()
    revision.number.local_revision_number = "5"
    revision.summary = "Fix gloss for apple\nsecond line"
    session = MagicMock()
    session.get_revision.return_value = revision
    session.get_change_records_async = AsyncMock(return_value=reports or [])
    session.registry = HandlerRegistry.create_with_installed_handlers()
    return session


# ---------------------------------------------------------------------------
# lexsync
# ---------------------------------------------------------------------------


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli_main.build_parser().parse_args([])

    def test_changes_args(self):
        args = cli_main.build_parser().parse_args(
            ["--project-root", "/p", "changes", "tip", "--json"]
        )

        assert args.project_root == "/p"
        assert args.command == "changes"
        assert args.revision == "tip"
        assert args.json is True


class TestChangesCommand:
    def _run(self, argv, session, tmp_path):
        with patch(
            "lexsync.cli.main.LexSyncSession"
        ) as session_cls, patch(
            "lexsync.cli.main.resolve_config",
            return_value=Config(project_root=str(tmp_path)),
        ):
            session_cls.return_value.__enter__.return_value = session
            return cli_main.main(argv)

    def test_text_output(self, no_logging, tmp_path, capsys):
        report = ChangeReport(
            kind=ReportKind.CHANGED,
            action_label="Edited",
            child=fir("story.txt", rev="5"),
        )
        session = _fake_session([report])

        assert self._run(["changes", "5"], session, tmp_path) == 0

        out = capsys.readouterr().out
        assert out.startswith("Revision 5: Fix gloss for apple\n")
        assert "second line" not in out
        assert "  Edited: story.txt" in out
        session.get_revision.assert_called_once_with("5")

    def test_json_output(self, no_logging, tmp_path, capsys):
        session = _fake_session()

        assert self._run(["changes", "5", "--json"], session, tmp_path) == 0

        data = json.loads(capsys.readouterr().out)
        assert data == {"counts": {"total": 0}, "reports": []}

    def test_backend_error_exits_1(self, no_logging, tmp_path, capsys):
        session = _fake_session()
        session.get_revision.side_effect = BackendError(
            "log", "unknown revision 'zz'"
        )

        assert self._run(["changes", "zz"], session, tmp_path) == 1

        assert "unknown revision" in capsys.readouterr().err


class TestConfiguration:
    def test_missing_project_root_exits_1(self, no_logging, capsys):
        assert cli_main.main(["changes", "5"]) == 1

        assert "Configuration error" in capsys.readouterr().err

    def test_logging_configured_from_yaml(self, no_logging, isolated):
        cli_setup, _ = no_logging
        config_dir = isolated / ".lexsync"
        config_dir.mkdir()
        (config_dir / "config.yml").write_text(
            "logging:\n  level: ERROR\n  format: json\n"
        )

        with patch(
            "lexsync.cli.main.resolve_config", side_effect=ValueError("stop")
        ):
            cli_main.main(["--log-file", "/tmp/x.log", "changes", "5"])

        kwargs = cli_setup.call_args[1]
        assert kwargs["mode"] == "cli"
        assert kwargs["level"] == "ERROR"
        assert kwargs["debug_format"] == "json"
        assert kwargs["log_file"] == "/tmp/x.log"

    def test_init_config_writes_starter(self, isolated, capsys):
        target = isolated / "cfg" / "config.yml"

        assert cli_main.main(["init-config", "--target", str(target)]) == 0

        assert target.exists()
        assert str(target) in capsys.readouterr().out

    def test_zero_config_loads_defaults(self, isolated):
        from lexsync.cli.bootstrap import load_unified_config

        assert load_unified_config(str(isolated)) == UnifiedConfig()


class TestNotesCommand:
    def test_lists_annotations(self, no_logging, isolated, capsys):
        (isolated / "dict.lift").write_text("<lift/>")
        repo = AnnotationRepository.from_file(isolated / "dict.lift.lexnotes")
        repo.add_annotation(
            new_annotation("conflict", "apple", "Jane", "both edited")
        )
        repo.add_annotation(new_annotation("question", "pear", "Jo", "why?"))
        repo.close()

        argv = ["--project-root", str(isolated), "notes", "dict.lift"]
        assert cli_main.main([*argv, "--conflicts"]) == 0

        out = capsys.readouterr().out
        assert "[conflict] apple" in out
        assert "Jane" in out
        assert "pear" not in out

    def test_no_annotations(self, no_logging, isolated, capsys):
        (isolated / "a.txt").write_text("x")

        argv = ["--project-root", str(isolated), "notes", "a.txt"]
        assert cli_main.main(argv) == 0

        assert "No annotations for a.txt." in capsys.readouterr().out

    def test_relative_path_taken_from_project_root(
        self, no_logging, isolated, capsys
    ):
        project = isolated / "project"
        project.mkdir()
        (project / "a.txt").write_text("x")

        argv = ["--project-root", str(project), "notes", "a.txt"]
        assert cli_main.main(argv) == 0

        assert "No annotations for a.txt." in capsys.readouterr().out
        assert (project / "a.txt.lexnotes").exists()
        assert not (isolated / "a.txt.lexnotes").exists()

    def test_missing_file_exits_1(self, no_logging, isolated, capsys):
        argv = ["--project-root", str(isolated), "notes", "missing.lift"]

        assert cli_main.main(argv) == 1
        assert "ERROR" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# lexsync-merge
# ---------------------------------------------------------------------------


def _sides(tmp_path, base, ours, theirs):
    paths = []
    for name, content in (
        ("story.txt", ours),
        ("story.base.txt", base),
        ("story.other.txt", theirs),
    ):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        paths.append(str(path))
    return paths


class TestMergeDriver:
    def test_clean_merge_exits_0(self, no_logging, isolated):
        ours, base, theirs = _sides(
            isolated, "a\nb\nc\n", "A\nb\nc\n", "a\nb\nC\n"
        )

        assert merge_driver.main([ours, base, theirs]) == 0

        assert (isolated / "story.txt").read_text() == "A\nb\nC\n"

    def test_conflict_still_exits_0_and_is_annotated(
        self, no_logging, isolated, monkeypatch
    ):
        monkeypatch.setenv("LEXSYNC_USER", "Merger")
        ours, base, theirs = _sides(isolated, "a\n", "mine\n", "yours\n")

        assert (
            merge_driver.main(
                [ours, base, theirs, "--our-label", "alice", "--they-win"]
            )
            == 0
        )

        saved = parse_annotations(
            (isolated / "story.txt.lexnotes").read_bytes()
        )
        assert [a.ref for a in saved] == ["story.txt"]
        assert saved[0].messages[0].author == "Merger"

    def test_project_root_defaults_to_cwd(self, no_logging, isolated):
        ours, base, theirs = _sides(isolated, "a\n", "a\n", "b\n")

        with patch("lexsync.cli.merge_driver.LexSyncSession") as session_cls:
            session_cls.return_value.__enter__.return_value.merge.return_value = []
            assert merge_driver.main([ours, base, theirs]) == 0

        config = session_cls.call_args[0][0]
        assert config.project_root == str(isolated.resolve())

    def test_unreadable_input_exits_1(self, no_logging, isolated, capsys):
        ours = isolated / "story.txt"
        ours.write_text("x\n")

        code = merge_driver.main(
            [str(ours), str(isolated / "missing.txt"), str(ours)]
        )

        assert code == 1
        assert "lexsync-merge:" in capsys.readouterr().err

    def test_driver_logs_in_driver_mode(self, no_logging, isolated):
        _, driver_setup = no_logging
        ours, base, theirs = _sides(isolated, "a\n", "a\n", "a\n")

        merge_driver.main([ours, base, theirs, "--log-file", "/tmp/m.log"])

        kwargs = driver_setup.call_args[1]
        assert kwargs["mode"] == "driver"
        assert kwargs["log_file"] == "/tmp/m.log"

    def test_invalid_project_root_exits_1(self, no_logging, isolated, capsys):
        code = merge_driver.main(
            ["a", "b", "c", "--project-root", str(isolated / "nope")]
        )

        assert code == 1
        assert "configuration error" in capsys.readouterr().err
