"""Shell, git and gh utilities.

Provides simple wrappers around subprocess calls for running git and gh
commands, plus output formatting helpers.
"""

from __future__ import annotations

import subprocess
import sys


class CommandError(RuntimeError):
    """An external command exited with a non-zero status.

    Attributes:
        command: The command line that was run.
        returncode: Exit status of the command.
        stderr: Diagnostic output captured from the command.
    """

    def __init__(self, args: list[str], returncode: int, stderr: str) -> None:
        self.command = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(args)}` failed with exit code {returncode}{detail}")


def _capture(argv: list[str], check: bool) -> str:
    result = subprocess.run(argv, capture_output=True, text=True)
    if check and result.returncode != 0:
        raise CommandError(argv, result.returncode, result.stderr)
    return result.stdout.strip()


def git(*args: str, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        check: If True (default), raise CommandError on non-zero exit. Set
               to False for commands that may legitimately fail.

    Returns:
        Stripped stdout from the git command.
    """
    return _capture(["git", *args], check)


def gh(*args: str, check: bool = True) -> str:
    """Run a GitHub CLI command and return stdout."""
    return _capture(["gh", *args], check)


def run(*args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    """Run an arbitrary command, capturing its output.

    Unlike git() and gh(), the CompletedProcess is returned so callers
    can inspect the exit status themselves.

    Raises:
        CommandError: If check is True and the command fails.
    """
    result = subprocess.run(list(args), capture_output=True, text=True)
    if check and result.returncode != 0:
        raise CommandError(list(args), result.returncode, result.stderr)
    return result


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the release workflow in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str) -> None:
    """Print a non-fatal warning to stderr."""
    print(f"  Warning: {msg}", file=sys.stderr)


def fatal(msg: str) -> None:
    """Print an error message and exit with code 1.

    Use for unrecoverable errors that should halt the workflow.
    """
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
