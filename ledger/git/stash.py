"""Git stash operations."""

from dataclasses import dataclass

from ledger.git.runner import GitExecutor, GitResult


@dataclass
class StashEntry:
    """One line of `git stash list`."""
    index: int
    ref: str  # e.g. "stash@{0}"
    message: str


def stash_push(git: GitExecutor, message: str, include_untracked: bool = True) -> GitResult:
    """Stash working tree and index changes under a message."""
    args = ["stash", "push"]
    if include_untracked:
        args.append("--include-untracked")
    args.extend(["-m", message])
    return git.run(args)


def stash_pop(git: GitExecutor, ref: str | None = None) -> GitResult:
    """Apply a stash and drop it on success."""
    args = ["stash", "pop"]
    if ref:
        args.append(ref)
    return git.run(args)


def list_stashes(git: GitExecutor) -> list[StashEntry]:
    """List stashes, newest first. Returns empty list on failure."""
    result = git.run(["stash", "list", "--format=%gd%x00%gs"])
    if not result.success:
        return []

    entries = []
    for i, line in enumerate(result.stdout.splitlines()):
        ref, _, message = line.partition("\0")
        if not ref:
            continue
        entries.append(StashEntry(index=i, ref=ref, message=message))
    return entries


def find_stash(git: GitExecutor, label: str) -> StashEntry | None:
    """Find the newest stash whose message contains label."""
    for entry in list_stashes(git):
        if label in entry.message:
            return entry
    return None
