"""Git status operations."""

from dataclasses import dataclass

from ledger.git.runner import GitExecutor


@dataclass
class StatusEntry:
    """One path from `git status --porcelain`."""
    path: str
    index: str  # X column
    worktree: str  # Y column
    old_path: str | None = None

    @property
    def staged(self) -> bool:
        return self.index not in (" ", "?", "!")

    @property
    def unstaged(self) -> bool:
        return self.worktree != " "

    @property
    def untracked(self) -> bool:
        return self.index == "?"


@dataclass
class BranchTracking:
    """Branch header from `git status --porcelain=v2 --branch`."""
    branch: str | None
    upstream: str | None
    ahead: int = 0
    behind: int = 0


def has_uncommitted_changes(git: GitExecutor) -> bool:
    """Check if worktree has any uncommitted changes (staged, unstaged, or untracked)."""
    result = git.run(["status", "--porcelain"])
    return bool(result.stdout.strip())


def get_status_entries(git: GitExecutor) -> list[StatusEntry]:
    """Get changed files (staged + unstaged + untracked).

    Uses -z for null-separated output to handle filenames with spaces/special chars.
    Returns empty list on git failure (e.g., not a repo).
    """
    result = git.run(["status", "--porcelain", "-z"])
    if not result.success or not result.stdout:
        return []

    entries = []
    # -z format: "XY filename\0" or "XY new\0old\0" for renames
    parts = result.stdout.split('\0')
    i = 0
    while i < len(parts):
        part = parts[i]
        if len(part) < 3:
            i += 1
            continue

        x, y, filename = part[0], part[1], part[3:]

        if x in ('R', 'C') and i + 1 < len(parts):
            entries.append(StatusEntry(path=filename, index=x, worktree=y, old_path=parts[i + 1]))
            i += 2
        else:
            entries.append(StatusEntry(path=filename, index=x, worktree=y))
            i += 1

    return entries


def get_branch_tracking(git: GitExecutor) -> BranchTracking | None:
    """Read branch, upstream and ahead/behind counts in one call.

    Returns None on git failure.
    """
    result = git.run(["status", "--porcelain=v2", "--branch"])
    if not result.success:
        return None

    tracking = BranchTracking(branch=None, upstream=None)
    for line in result.stdout.splitlines():
        if not line.startswith("# branch."):
            continue
        key, _, value = line[2:].partition(" ")
        if key == "branch.head":
            tracking.branch = None if value == "(detached)" else value
        elif key == "branch.upstream":
            tracking.upstream = value
        elif key == "branch.ab":
            # "+<ahead> -<behind>"
            ahead, _, behind = value.partition(" ")
            try:
                tracking.ahead = int(ahead.lstrip("+"))
                tracking.behind = int(behind.lstrip("-"))
            except ValueError:
                pass
    return tracking


def get_staged_stat(git: GitExecutor) -> str:
    """Get stat of staged changes."""
    result = git.run(["diff", "--cached", "--stat"])
    return result.stdout.strip()


def get_unstaged_stat(git: GitExecutor) -> str:
    """Get stat of unstaged changes."""
    result = git.run(["diff", "--stat"])
    return result.stdout.strip()


def get_untracked_files(git: GitExecutor) -> list[str]:
    """Get list of untracked files."""
    result = git.run(["ls-files", "--others", "--exclude-standard"])
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]
