"""Git command runner with timeout handling.

`run_git` is the single place a git process is spawned. Repository contexts
hold a `GitExecutor`, which binds `run_git` to one working directory so that
nothing issued through it can touch another repository.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
NETWORK_TIMEOUT = 60


@dataclass
class GitResult:
    """Result of a git command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    # Undecoded stdout, only filled by binary runs
    stdout_bytes: bytes = b""

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout and stderr combined, for error classification."""
        return f"{self.stdout}\n{self.stderr}".strip()


def run_git(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_TIMEOUT,
    binary: bool = False,
) -> GitResult:
    """
    Run a git command with timeout handling.

    Args:
        args: Git command arguments (e.g., ["status", "--porcelain"])
        cwd: Working directory for the command
        timeout: Timeout in seconds
        binary: Keep stdout as bytes in stdout_bytes as well. Patches need
            this; text mode folds CRLF line endings.

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["git", "-C", str(cwd)] + args
    try:
        if binary:
            result = subprocess.run(cmd, capture_output=True, timeout=timeout)
            return GitResult(
                returncode=result.returncode,
                stdout=result.stdout.decode("utf-8", errors="replace"),
                stderr=result.stderr.decode("utf-8", errors="replace"),
                stdout_bytes=result.stdout,
            )

        # File contents in diffs need not be UTF-8
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
        return GitResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )
    except FileNotFoundError:
        return GitResult(
            returncode=-1,
            stdout="",
            stderr="git executable not found",
        )


class GitExecutor:
    """Runs git commands with a fixed working directory.

    The optional `on_command` hook is called with the argv of every command
    before it runs; tests use it to record execution order.
    """

    def __init__(
        self,
        cwd: Path,
        timeout: int = DEFAULT_TIMEOUT,
        network_timeout: int = NETWORK_TIMEOUT,
        on_command: Callable[[list[str]], None] | None = None,
    ):
        self.cwd = Path(cwd)
        self.timeout = timeout
        self.network_timeout = network_timeout
        self.on_command = on_command

    def run(self, args: list[str], timeout: int | None = None, binary: bool = False) -> GitResult:
        if self.on_command:
            self.on_command(list(args))
        logger.debug(f"[GIT] {self.cwd}: git {' '.join(args)}")
        return run_git(args, self.cwd, timeout=timeout or self.timeout, binary=binary)

    def run_network(self, args: list[str]) -> GitResult:
        """Run a command that talks to a remote (fetch, pull, push)."""
        return self.run(args, timeout=self.network_timeout)

    def __repr__(self) -> str:
        return f"GitExecutor({str(self.cwd)!r})"
