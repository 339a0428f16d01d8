"""Tests for the testcase-sync command-line front end.

Each test drives ``main(argv)`` directly and inspects the exit code and
captured stdout/stderr.  logging.basicConfig is mocked as in
test_logger.py so the CLI does not reconfigure pytest's handlers.
"""

import io
import json
from unittest.mock import patch

import pytest

from testcase_sync import __version__
from testcase_sync.cli import main
from testcase_sync.notation import format_notation


@pytest.fixture(autouse=True)
def _cli_sandbox(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with patch("testcase_sync.logger.logging.basicConfig"):
        yield


@pytest.fixture
def login_file(tmp_path, login_notation):
    path = tmp_path / "login.tc"
    path.write_text(login_notation)
    return path


# ---------------------------------------------------------------------------
# Conversion commands
# ---------------------------------------------------------------------------


class TestConversionCommands:
    """Tests for parse, format, encode-steps and decode-steps."""

    def test_parse_prints_document_json(self, login_file, capsys):
        assert main(["parse", str(login_file)]) == 0

        doc = json.loads(capsys.readouterr().out)
        assert doc["title"] == "Login Test"
        assert doc["priority"] == 1
        assert len(doc["steps"]) == 2

    def test_parse_from_stdin(self, login_notation, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(login_notation))

        assert main(["parse", "-"]) == 0
        assert json.loads(capsys.readouterr().out)["title"] == "Login Test"

    def test_parse_with_padding(self, tmp_path, capsys):
        draft = tmp_path / "draft.tc"
        draft.write_text("title: Draft\n")

        assert main(["--pad-empty-steps", "parse", str(draft)]) == 0
        assert len(json.loads(capsys.readouterr().out)["steps"]) == 10

    def test_format_json_document(self, tmp_path, base_document, capsys):
        source = tmp_path / "doc.json"
        source.write_text(base_document.model_dump_json())

        assert main(["format", str(source)]) == 0

        out = capsys.readouterr().out
        assert out == format_notation(base_document)

    def test_format_disabled_steps(self, login_file, capsys):
        assert main(["format", str(login_file), "--disabled", "2"]) == 0

        out = capsys.readouterr().out
        assert "action: Open login page\n" in out
        assert "// action: Submit credentials\n" in out

    def test_format_disabled_rejects_zero(self, login_file):
        with pytest.raises(SystemExit) as exc:
            main(["format", str(login_file), "--disabled", "0"])
        assert exc.value.code == 2

    def test_encode_steps(self, login_file, capsys):
        assert main(["encode-steps", str(login_file)]) == 0

        out = capsys.readouterr().out
        assert out.startswith('<steps id="0" last="2">')
        assert '<step id="2" type="ValidateStep">' in out

    def test_decode_steps(self, tmp_path, capsys):
        source = tmp_path / "steps.xml"
        source.write_text(
            '<steps id="0" last="1"><step id="7" type="ActionStep">'
            "<action>Open</action><expected></expected></step></steps>"
        )

        assert main(["decode-steps", str(source)]) == 0

        (step,) = json.loads(capsys.readouterr().out)
        assert step["stable_id"] == "step_ado_7"
        assert step["action"] == "Open"

    def test_format_markup_input(self, tmp_path, capsys):
        source = tmp_path / "steps.dat"
        source.write_text('<steps id="0" last="1"><step id="1"><action>Go</action></step></steps>')

        assert main(["format", str(source)]) == 0
        assert "action: Go" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidateCommand:
    """Tests for the validate subcommand."""

    def test_valid(self, login_file, capsys):
        assert main(["validate", str(login_file)]) == 0
        assert capsys.readouterr().out.strip() == "Valid"

    def test_invalid_exits_1(self, tmp_path, capsys):
        source = tmp_path / "bad.tc"
        source.write_text("priority: 9\n")

        assert main(["validate", str(source)]) == 1

        out = capsys.readouterr().out
        assert "- Title is required" in out
        assert "- At least one step is required" in out
        assert "- Priority must be between 0 and 4" in out

    def test_priority_bounds_from_env(self, login_file, monkeypatch, capsys):
        monkeypatch.setenv("TESTCASE_SYNC_PRIORITY_MIN", "2")
        assert main(["validate", str(login_file)]) == 1
        assert "Priority must be between 2 and 4" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# patch
# ---------------------------------------------------------------------------


class TestPatchCommand:
    """Tests for the patch subcommand."""

    def test_add_operations(self, login_file, capsys):
        assert main(["patch", str(login_file)]) == 0

        ops = json.loads(capsys.readouterr().out)
        assert ops[0] == {"op": "add", "path": "/fields/System.Title", "value": "Login Test"}
        assert {op["op"] for op in ops} == {"add"}

    def test_replace_flag(self, login_file, capsys):
        assert main(["patch", str(login_file), "--replace"]) == 0

        ops = json.loads(capsys.readouterr().out)
        assert {op["op"] for op in ops} == {"replace"}

    def test_untitled_document_exits_1(self, tmp_path, capsys):
        source = tmp_path / "untitled.tc"
        source.write_text("action: Go\n")

        assert main(["patch", str(source)]) == 1
        assert "Title is required" in capsys.readouterr().err

    def test_out_of_range_priority_exits_1(self, tmp_path, capsys):
        source = tmp_path / "zero.tc"
        source.write_text("title: T\npriority: 0\n\naction: Go\n")

        assert main(["patch", str(source)]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "- Priority must be between 1 and 4" in captured.err


# ---------------------------------------------------------------------------
# reconcile
# ---------------------------------------------------------------------------


class TestReconcileCommand:
    """Tests for the reconcile subcommand."""

    @pytest.fixture
    def fork(self, tmp_path, base_document):
        base = tmp_path / "base.json"
        base.write_text(base_document.model_dump_json())
        client = tmp_path / "client.tc"
        client.write_text(format_notation(base_document.replace(priority=1)))
        server = tmp_path / "server.json"
        server.write_text(base_document.replace(priority=3).model_dump_json())
        return [str(base), str(client), str(server)]

    def test_json_output(self, fork, capsys):
        assert main(["reconcile", *fork, "--strategy", "client-wins", "--json"]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["strategy"] == "client-wins"
        assert result["resolved"] is True
        assert [c["field"] for c in result["conflicts"]] == ["priority"]
        assert result["merged"]["priority"] == 1

    def test_text_output(self, fork, capsys):
        assert main(["reconcile", *fork]) == 0

        captured = capsys.readouterr()
        assert "priority: 3" in captured.out
        assert "1. priority (HIGH, both-changed)" in captured.err

    def test_strategy_from_env(self, fork, monkeypatch, capsys):
        monkeypatch.setenv("TESTCASE_SYNC_STRATEGY", "client-wins")

        assert main(["reconcile", *fork, "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["merged"]["priority"] == 1

    def test_manual_fields(self, fork, capsys):
        argv = ["reconcile", *fork, "--strategy", "manual", "--fields", "priority, title", "--json"]
        assert main(argv) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["resolved"] is False
        assert result["merged"]["priority"] == 1

    def test_manual_unknown_field_exits_1(self, fork, capsys):
        argv = ["reconcile", *fork, "--strategy", "manual", "--fields", "colour"]
        assert main(argv) == 1
        assert "Unknown document fields" in capsys.readouterr().err

    def test_notation_inputs_share_base_step_ids(self, tmp_path, capsys):
        paths = []
        for name, last in (("base", "B"), ("mine", "B2"), ("theirs", "B3")):
            path = tmp_path / f"{name}.tc"
            path.write_text(f"title: T\n\naction: A\n\naction: {last}\n")
            paths.append(str(path))

        assert main(["reconcile", *paths, "--json"]) == 0

        merged = json.loads(capsys.readouterr().out)["merged"]
        assert [s["action"] for s in merged["steps"]] == ["A", "B3", "B2"]


# ---------------------------------------------------------------------------
# Output files and config bootstrapping
# ---------------------------------------------------------------------------


class TestOutputAndInit:
    """Tests for --output and init-config."""

    def test_output_file(self, login_file, tmp_path, capsys):
        target = tmp_path / "login.json"

        assert main(["parse", str(login_file), "-o", str(target)]) == 0

        assert capsys.readouterr().out == ""
        assert json.loads(target.read_text())["title"] == "Login Test"

    def test_output_parent_missing_exits_1(self, login_file, tmp_path, capsys):
        target = tmp_path / "missing" / "login.json"

        assert main(["parse", str(login_file), "--output", str(target)]) == 1
        assert "Output parent directory not found" in capsys.readouterr().err

    def test_validate_errors_written_together(self, tmp_path):
        source = tmp_path / "bad.tc"
        source.write_text("priority: 9\n")
        target = tmp_path / "report.txt"

        assert main(["validate", str(source), "-o", str(target)]) == 1

        lines = target.read_text().splitlines()
        assert "- Title is required" in lines
        assert "- At least one step is required" in lines

    def test_init_config_creates_starter(self, tmp_path, capsys):
        assert main(["init-config"]) == 0

        created = tmp_path / ".testcase_sync" / "config.yml"
        assert created.exists()
        assert "# notation:" in created.read_text()
        assert capsys.readouterr().out.strip().endswith("config.yml")

    def test_init_config_keeps_existing(self, tmp_path, capsys):
        config_dir = tmp_path / ".testcase_sync"
        config_dir.mkdir()
        existing = config_dir / "config.yml"
        existing.write_text("reconcile:\n  strategy: client-wins\n")

        assert main(["init-config"]) == 0
        assert existing.read_text() == "reconcile:\n  strategy: client-wins\n"


# ---------------------------------------------------------------------------
# Errors and global flags
# ---------------------------------------------------------------------------


class TestErrorsAndFlags:
    """Tests for exit codes and global options."""

    def test_missing_file_exits_1(self, capsys):
        assert main(["parse", "nope.tc"]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_malformed_json_exits_1(self, tmp_path, capsys):
        source = tmp_path / "broken.json"
        source.write_text('{"title": ')

        assert main(["parse", str(source)]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_invalid_config_exits_1(self, login_file, monkeypatch, capsys):
        monkeypatch.setenv("TESTCASE_SYNC_STRATEGY", "newest")

        assert main(["parse", str(login_file)]) == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_yaml_comment_marker(self, tmp_path, capsys):
        config_dir = tmp_path / ".testcase_sync"
        config_dir.mkdir()
        (config_dir / "config.yml").write_text("notation:\n  comment_marker: '#'\n")
        source = tmp_path / "doc.tc"
        source.write_text("# title: hidden\ntitle: shown\n")

        assert main(["parse", str(source)]) == 0
        assert json.loads(capsys.readouterr().out)["title"] == "shown"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_subcommand_required(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2
