"""Shared fixtures: a scripted git executor and throwaway real repositories."""

import shutil
import subprocess
import threading
import time
from dataclasses import dataclass, replace
from pathlib import Path

import pytest

from ledger.git.runner import GitResult
from ledger.lib.config import LedgerConfig
from ledger.repos.context import RepositoryContext


class FakeGit:
    """Stands in for GitExecutor.

    Replies are registered per argv prefix; the longest matching prefix
    wins. A prefix registered with several replies hands them out in order
    and keeps repeating the last one. Stash push/list/pop are simulated so
    workflows can find their stash by label.
    """

    def __init__(self, cwd: Path = Path("/repo"), delay: float = 0.0):
        self.cwd = cwd
        self.delay = delay
        self.on_command = None
        self.calls: list[list[str]] = []
        self.stashes: list[str] = []  # messages, newest first
        self._replies: dict[tuple[str, ...], list[GitResult]] = {}
        self._lock = threading.Lock()

    def respond(self, *prefix: str, stdout: str = "", stderr: str = "", returncode: int = 0) -> "FakeGit":
        self._replies.setdefault(tuple(prefix), []).append(
            GitResult(returncode=returncode, stdout=stdout, stderr=stderr)
        )
        return self

    def run(self, args: list[str], timeout: int | None = None, binary: bool = False) -> GitResult:
        if self.on_command:
            self.on_command(list(args))
        with self._lock:
            self.calls.append(list(args))
        if self.delay:
            time.sleep(self.delay)

        reply = self._reply_for(args)
        if args[:2] == ["stash", "push"]:
            return self._stash_push(args, reply)
        if args[:2] == ["stash", "list"] and reply is None:
            lines = [f"stash@{{{i}}}\0On main: {msg}" for i, msg in enumerate(self.stashes)]
            return GitResult(0, "\n".join(lines) + ("\n" if lines else ""), "")
        if args[:2] == ["stash", "pop"]:
            return self._stash_pop(args, reply)
        result = reply or GitResult(0, "", "")
        if binary:
            result = replace(result, stdout_bytes=result.stdout.encode())
        return result

    def run_network(self, args: list[str]) -> GitResult:
        return self.run(args)

    def commands(self, *prefix: str) -> list[list[str]]:
        """Recorded calls starting with prefix."""
        return [c for c in self.calls if c[:len(prefix)] == list(prefix)]

    def _reply_for(self, args: list[str]) -> GitResult | None:
        best = None
        for prefix in self._replies:
            if tuple(args[:len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return None
        queue = self._replies[best]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def _stash_push(self, args: list[str], reply: GitResult | None) -> GitResult:
        result = reply or GitResult(0, "Saved working directory", "")
        if result.success:
            self.stashes.insert(0, args[args.index("-m") + 1])
        return result

    def _stash_pop(self, args: list[str], reply: GitResult | None) -> GitResult:
        result = reply or GitResult(0, "", "")
        if result.success and len(args) > 2:
            index = int(args[2][len("stash@{"):-1])
            self.stashes.pop(index)
        return result


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def config():
    return LedgerConfig(process_lock=False, lock_timeout=5)


@pytest.fixture
def fake_context(fake_git, config, tmp_path):
    """A RepositoryContext whose executor is a FakeGit."""
    return RepositoryContext(Path("/repo"), tmp_path / ".git", config, git=fake_git)


# Real repositories


@pytest.fixture(autouse=True)
def git_identity(monkeypatch, tmp_path):
    """Keep user/system git config out of real-git tests."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))


def _require_git():
    if shutil.which("git") is None:
        pytest.skip("git not installed")


def git(cwd: Path, *args: str) -> str:
    """Run git for test setup, failing the test on error."""
    result = subprocess.run(["git", "-C", str(cwd), *args], capture_output=True, text=True)
    if result.returncode != 0:
        raise AssertionError(f"git {' '.join(args)} failed: {result.stderr}")
    return result.stdout


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def commit_all(repo: Path, message: str) -> str:
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD").strip()


@dataclass
class Remote:
    """A bare origin with two clones of main."""
    origin: Path
    work: Path  # the clone under test
    other: Path  # a teammate's clone used to move origin ahead

    def push_from_other(self, filename: str, text: str, message: str = "teammate change") -> str:
        write(self.other / filename, text)
        sha = commit_all(self.other, message)
        git(self.other, "push", "-q", "origin", "main")
        return sha


@pytest.fixture
def local_repo(tmp_path):
    """A repository with no remote and one commit on main."""
    _require_git()
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "main")
    write(repo / "README.md", "hello\n")
    commit_all(repo, "initial")
    return repo


@pytest.fixture
def remote(tmp_path):
    _require_git()
    origin = tmp_path / "origin.git"
    git(tmp_path, "init", "-q", "--bare", "-b", "main", str(origin))

    seed = tmp_path / "seed"
    git(tmp_path, "clone", "-q", str(origin), str(seed))
    git(seed, "symbolic-ref", "HEAD", "refs/heads/main")
    write(seed / "shared.txt", "one\ntwo\nthree\n")
    write(seed / "notes.txt", "alpha\nbeta\n")
    commit_all(seed, "initial")
    git(seed, "push", "-q", "origin", "main")

    work = tmp_path / "work"
    other = tmp_path / "other"
    git(tmp_path, "clone", "-q", str(origin), str(work))
    git(tmp_path, "clone", "-q", str(origin), str(other))
    return Remote(origin=origin, work=work, other=other)
