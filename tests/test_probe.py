"""Tests for the external probe layer."""

import subprocess
import sys
from unittest.mock import MagicMock, patch

import pytest

from reclaim.models import ProbeError
from reclaim.probe import (
    du_command,
    find_command,
    parse_du_output,
    parse_epoch_output,
    remove_command,
    run_probe,
    stat_command,
)


class TestRunProbe:
    @patch("subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=b"42\t/x\n", stderr=b"")
        result = run_probe(["du", "-sk", "/x"], timeout=5)
        assert result.ok
        assert result.output == "42\t/x\n"
        assert mock_run.call_args.kwargs["timeout"] == 5

    @patch("subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired("du", 5)
        result = run_probe(["du", "-sk", "/x"], timeout=5)
        assert not result.ok
        assert result.error == ProbeError.TIMEOUT
        assert "timed out" in result.message

    @patch("subprocess.run")
    def test_overflow(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=b"x" * 101, stderr=b"")
        result = run_probe(["find", "/"], timeout=5, max_output_bytes=100)
        assert not result.ok
        assert result.error == ProbeError.OVERFLOW

    @patch("subprocess.run")
    def test_nonzero_exit_keeps_output(self, mock_run):
        mock_run.return_value = MagicMock(
            returncode=1, stdout=b"/a/node_modules\n", stderr=b"Permission denied"
        )
        result = run_probe(["find", "/a"], timeout=5)
        assert not result.ok
        assert result.error == ProbeError.EXECUTION_FAILED
        assert result.message == "Permission denied"
        assert result.output == "/a/node_modules\n"

    @patch("subprocess.run")
    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("No such file: 'du'")
        result = run_probe(["du", "-sk", "/x"], timeout=5)
        assert not result.ok
        assert result.error == ProbeError.EXECUTION_FAILED

    def test_real_command(self, tmp_path):
        (tmp_path / "file.txt").write_text("hello")
        result = run_probe(["ls", str(tmp_path)], timeout=10)
        assert result.ok
        assert "file.txt" in result.output

    def test_real_failure(self, tmp_path):
        result = run_probe(["ls", str(tmp_path / "missing")], timeout=10)
        assert not result.ok
        assert result.error == ProbeError.EXECUTION_FAILED


class TestCommands:
    def test_find_command_prunes(self):
        cmd = find_command("/home/me", "node_modules", 6)
        assert cmd[:2] == ["find", "/home/me"]
        assert "-prune" in cmd
        assert cmd[cmd.index("-maxdepth") + 1] == "6"
        assert cmd[cmd.index("-name") + 1] == "node_modules"

    def test_paths_are_single_arguments(self):
        path = '/Users/me/my "odd" project/node_modules'
        assert du_command(path)[-1] == path
        assert stat_command(path)[-1] == path
        assert remove_command(path)[-1] == path

    def test_remove_command(self):
        assert remove_command("/a", "/b") == ["rm", "-rf", "--", "/a", "/b"]

    def test_stat_command_platform(self):
        cmd = stat_command("/x")
        if sys.platform == "darwin":
            assert cmd == ["stat", "-f", "%c", "/x"]
        else:
            assert cmd == ["stat", "-c", "%Z", "/x"]


class TestParsers:
    def test_parse_du_output(self):
        assert parse_du_output("1234\t/some/path\n") == 1234
        assert parse_du_output("  56   /p") == 56

    def test_parse_du_output_invalid(self):
        assert parse_du_output("") == 0
        assert parse_du_output(None) == 0
        assert parse_du_output("du: cannot access") == 0

    def test_parse_epoch_output(self):
        assert parse_epoch_output("1700000000\n") == 1700000000

    def test_parse_epoch_output_invalid(self):
        assert parse_epoch_output("") == 0
        assert parse_epoch_output("not a number") == 0
        assert parse_epoch_output(None) == 0


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX tools required")
class TestRealTools:
    def test_du_and_stat(self, tmp_path):
        (tmp_path / "data.bin").write_bytes(b"x" * 8192)

        size = run_probe(du_command(str(tmp_path)), timeout=10)
        assert size.ok
        assert parse_du_output(size.output) > 0

        age = run_probe(stat_command(str(tmp_path)), timeout=10)
        assert age.ok
        assert parse_epoch_output(age.output) > 0
