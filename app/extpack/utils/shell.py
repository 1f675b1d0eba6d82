"""Shell execution utilities.

Provides subprocess execution with proper error handling, both for
short captured commands and for detached long-running programs.
"""

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
) -> CommandResult:
    """Execute a command and return the captured result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
        cwd=cwd,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def spawn_detached(args: list[str], *, cwd: Path | None = None) -> int:
    """Start a program without waiting for it.

    Output is not captured and the exit code is never collected; the
    child keeps running after this process exits.

    Args:
        args: Command and arguments to execute.
        cwd: Working directory for the program.

    Returns:
        PID of the started process.

    Raises:
        FileNotFoundError: If the executable is not found.
        OSError: If the process cannot be started.
    """
    kwargs: dict[str, Any] = {}
    if sys.platform == "win32":
        kwargs["creationflags"] = (
            subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP  # type: ignore[attr-defined]
        )
    else:
        kwargs["start_new_session"] = True

    process = subprocess.Popen(  # nosec: B603
        args,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        **kwargs,
    )
    # never waited for; mark as reaped so Popen.__del__ stays quiet
    process.returncode = 0
    return process.pid
