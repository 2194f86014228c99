"""Git staging and commit operations."""

from ledger.git.runner import GitExecutor, GitResult


def stage_all(git: GitExecutor) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return git.run(["add", "-A"])


def stage_file(git: GitExecutor, path: str) -> GitResult:
    return git.run(["add", "--", path])


def unstage_file(git: GitExecutor, path: str) -> GitResult:
    """Take a path out of the index; the working tree copy is untouched."""
    return git.run(["restore", "--staged", "--", path])


def unstage_all(git: GitExecutor) -> GitResult:
    return git.run(["reset", "-q"])


def has_staged_changes(git: GitExecutor) -> bool:
    """Check if the index differs from HEAD."""
    result = git.run(["diff", "--cached", "--quiet"])
    # exit 0 = nothing staged, exit 1 = staged changes
    return result.returncode == 1


def commit(git: GitExecutor, message: str, description: str | None = None) -> GitResult:
    """Create a commit with the given message and optional body."""
    args = ["commit", "-m", message]
    if description:
        args.extend(["-m", description])
    return git.run(args)
