"""Subprocess execution that never raises on failure.

Commands are always passed as an argument vector (no shell), so branch
names and other user input cannot be interpreted by a shell.

Usage:
    proc = run(["git", "status", "--porcelain"], cwd=repo_path)
    if not proc.ok:
        print(proc.stderr)

    match proc.to_result():
        case Ok(stdout):
            ...
        case Err(error):
            print(f"Failed: {error}")
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from bm.core.result import Err, Ok, Result

__all__ = ["ProcessError", "ProcessResult", "Runner", "run"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 when the process could not start.
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Captured outcome of one command, successful or not."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def to_result(self) -> Result[str, ProcessError]:
        """Ok(stdout) on exit 0, otherwise Err(ProcessError)."""
        if self.ok:
            return Ok(self.stdout)
        return Err(
            ProcessError(
                command=self.command,
                returncode=self.returncode,
                stdout=self.stdout,
                stderr=self.stderr,
            )
        )


Runner = Callable[[list[str], Path], ProcessResult]


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """Execute a command, wait for it, and capture its output.

    There is no timeout: a hung command hangs the caller.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Environment variables (uses current env if None).

    Returns:
        ProcessResult. A command that cannot be started (missing
        executable, bad cwd) is reported with returncode -1.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        return ProcessResult(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e))

    return ProcessResult(
        command=tuple(cmd),
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
