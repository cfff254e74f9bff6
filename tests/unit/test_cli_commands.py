"""Unit tests for the CLI — argument handling and exit status propagation.

Exercises the ``proglog`` and ``proglog-cat`` Typer apps through
typer.testing.CliRunner.  Child processes are real; the transcript is
checked on disk.
"""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from proglog.cli.app import app, cat_app
from proglog.core.timestamp import LABEL_SIZE, encode_label

runner = CliRunner()


def _payloads(path: Path) -> list[bytes]:
    return [line[LABEL_SIZE:] for line in path.read_bytes().splitlines(keepends=True)]


# ---------------------------------------------------------------------------
# Test: proglog
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "--log" in result.output
        assert "COMMAND" in result.output

    def test_missing_command_is_usage_error(self, tmp_path: Path):
        log = tmp_path / "transcript"
        result = runner.invoke(app, ["--log", str(log)])
        assert result.exit_code != 0
        assert "usage" in result.output.lower()
        assert not log.exists()

    def test_log_equals_form(self, tmp_path: Path):
        log = tmp_path / "eq.log"
        result = runner.invoke(app, [f"--log={log}", "sh", "-c", "exit 3"])
        assert result.exit_code == 3
        assert _payloads(log) == [b"$ sh -c exit 3\n"]

    def test_log_separate_argument(self, tmp_path: Path):
        log = tmp_path / "sep.log"
        result = runner.invoke(app, ["--log", str(log), "true"])
        assert result.exit_code == 0
        assert _payloads(log) == [b"$ true\n"]

    def test_default_log_path(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["true"])
        assert result.exit_code == 0
        assert (tmp_path / "transcript").exists()

    def test_child_options_are_not_parsed(self, tmp_path: Path):
        log = tmp_path / "opts.log"
        result = runner.invoke(app, ["--log", str(log), "sh", "-c", "exit 0", "--help", "-x"])
        assert result.exit_code == 0
        assert _payloads(log)[0] == b"$ sh -c exit 0 --help -x\n"

    def test_signal_reported_and_nonzero(self, tmp_path: Path):
        log = tmp_path / "sig.log"
        result = runner.invoke(app, ["--log", str(log), "sh", "-c", "kill -9 $$"])
        assert result.exit_code == 1
        assert "signal 9" in result.output

    def test_missing_program_names_failing_primitive(self, tmp_path: Path):
        log = tmp_path / "missing.log"
        result = runner.invoke(app, ["--log", str(log), "proglog-test-no-such-program"])
        assert result.exit_code == 1
        assert "execvp" in result.output
        assert _payloads(log) == [b"$ proglog-test-no-such-program\n"]


# ---------------------------------------------------------------------------
# Test: proglog-cat
# ---------------------------------------------------------------------------


class TestCatCommand:
    def _write(self, tmp_path: Path) -> Path:
        path = tmp_path / "transcript"
        path.write_bytes(
            encode_label(1_792_368_000, 250_000_000) + b"$ echo hi\n"
            + encode_label(1_792_368_001, 0) + b"hi\n"
        )
        return path

    def test_decodes_times(self, tmp_path: Path):
        result = runner.invoke(cat_app, [str(self._write(tmp_path))])
        assert result.exit_code == 0
        assert "2026-10-19 00:00:00.250000" in result.output
        assert "$ echo hi" in result.output
        assert "2026-10-19 00:00:01.000000  hi" in result.output

    def test_raw_labels(self, tmp_path: Path):
        result = runner.invoke(cat_app, ["--raw", str(self._write(tmp_path))])
        assert result.exit_code == 0
        assert encode_label(1_792_368_001, 0).decode().strip() in result.output

    def test_malformed_transcript(self, tmp_path: Path):
        path = tmp_path / "junk"
        path.write_bytes(b"this is not a transcript\n")
        result = runner.invoke(cat_app, [str(path)])
        assert result.exit_code == 1
        assert "bad label" in result.output

    def test_missing_file(self, tmp_path: Path):
        result = runner.invoke(cat_app, [str(tmp_path / "nope")])
        assert result.exit_code != 0
