"""Subprocess helpers for commands run on behalf of the reconciler.

Output is always captured as text; callers inspect the returned
CommandResult rather than catching CalledProcessError.
"""

import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

SENSITIVE_PLACEHOLDER = "<sensitive>"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """What a command printed and how it exited.

    A simulated result stands for a command skipped in dry-run: empty
    output and status 0.
    """

    stdout: str
    stderr: str
    returncode: int
    simulated: bool = False

    @classmethod
    def skipped(cls) -> "CommandResult":
        """Result reported for a command that was not run."""
        return cls(stdout="", stderr="", returncode=0, simulated=True)

    @property
    def success(self) -> bool:
        """Exit status 0 (always true for a simulated result)."""
        return self.returncode == 0


def format_command(args: Sequence[str], *, sensitive: bool = False) -> str:
    """Render a command line for log output.

    Sensitive commands show the executable only, their arguments are
    replaced by a placeholder.
    """
    if not args:
        return ""
    if sensitive:
        return f"{args[0]} {SENSITIVE_PLACEHOLDER}"
    return shlex.join(args)


def run_command(
    args: Sequence[str],
    *,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Execute a command and capture its output.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for the command.
        cwd: Working directory for the command.
        env: Variables laid over the current environment.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds timeout.
        FileNotFoundError: If the executable is not found.
    """
    full_env = {**os.environ, **env} if env else None
    result = subprocess.run(
        list(args),
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
        cwd=cwd,
        env=full_env,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if name resolves to an executable (PATH lookup or explicit path)."""
    return shutil.which(name) is not None
