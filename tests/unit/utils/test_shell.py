"""Unit tests for shell execution utilities."""

from unittest.mock import MagicMock, patch

import pytest
from pathstate.utils.shell import CommandResult, command_exists, format_command, run_command


class TestCommandResult:
    """Tests for CommandResult."""

    def test_success(self) -> None:
        """Exit code 0 is success."""
        assert CommandResult(stdout="", stderr="", returncode=0).success is True
        assert CommandResult(stdout="", stderr="", returncode=2).success is False

    def test_skipped(self) -> None:
        """A skipped command is a simulated, successful, empty result."""
        result = CommandResult.skipped()

        assert result.simulated is True
        assert result.success is True
        assert (result.stdout, result.stderr) == ("", "")

    def test_real_results_not_simulated(self) -> None:
        assert CommandResult(stdout="x", stderr="", returncode=0).simulated is False


class TestFormatCommand:
    """Tests for format_command function."""

    def test_quotes_arguments(self) -> None:
        """Arguments with spaces are shell-quoted."""
        assert format_command(["touch", "a file"]) == "touch 'a file'"

    def test_sensitive(self) -> None:
        """Sensitive commands show only the executable."""
        assert format_command(["passwd", "secret"], sensitive=True) == "passwd <sensitive>"

    def test_empty(self) -> None:
        assert format_command([]) == ""


class TestRunCommand:
    """Tests for run_command function."""

    @patch("pathstate.utils.shell.subprocess.run")
    def test_captures_output(self, mock_run: MagicMock) -> None:
        """run_command captures stdout/stderr as text and never checks."""
        mock_run.return_value = MagicMock(stdout="out", stderr="err", returncode=1)

        result = run_command(("ls",), cwd="/tmp")

        assert result == CommandResult(stdout="out", stderr="err", returncode=1)
        assert mock_run.call_args.args[0] == ["ls"]
        kwargs = mock_run.call_args.kwargs
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["check"] is False
        assert kwargs["cwd"] == "/tmp"
        assert kwargs["env"] is None

    @patch("pathstate.utils.shell.subprocess.run")
    def test_env_overlay(self, mock_run: MagicMock) -> None:
        """Extra variables are merged over the current environment."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        with patch.dict("pathstate.utils.shell.os.environ", {"KEEP": "1"}, clear=True):
            run_command(["env"], env={"LANG": "C"})

        assert mock_run.call_args.kwargs["env"] == {"KEEP": "1", "LANG": "C"}

    def test_real_command(self) -> None:
        """A real command's exit status and output are reported."""
        result = run_command(["sh", "-c", "echo hi; exit 3"])

        assert result.stdout == "hi\n"
        assert result.returncode == 3
        assert result.success is False

    def test_raises_file_not_found(self) -> None:
        """A missing executable raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            run_command(["/nonexistent/command/pathstate"])


class TestCommandExists:
    """Tests for command_exists function."""

    @patch("pathstate.utils.shell.shutil.which", return_value="/usr/bin/ls")
    def test_found(self, _which: MagicMock) -> None:
        """Existing commands are found."""
        assert command_exists("ls") is True

    @patch("pathstate.utils.shell.shutil.which", return_value=None)
    def test_not_found(self, _which: MagicMock) -> None:
        """Missing commands are not found."""
        assert command_exists("nope") is False
