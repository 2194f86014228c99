"""Git remote operations."""

from ledger.git.runner import GitExecutor, GitResult


def has_remote(git: GitExecutor) -> bool:
    """Check if repo has any remotes configured."""
    result = git.run(["remote"])
    return bool(result.stdout.strip())


def fetch(git: GitExecutor, remote: str = "origin", branch: str | None = None) -> GitResult:
    """Fetch from remote."""
    args = ["fetch", remote]
    if branch:
        args.append(branch)
    return git.run_network(args)


def pull_rebase(git: GitExecutor, remote: str, branch: str) -> GitResult:
    """Pull with rebase (no merge commits)."""
    return git.run_network(["pull", "--rebase", remote, branch])


def rebase_abort(git: GitExecutor) -> GitResult:
    """Abort an in-progress rebase."""
    return git.run(["rebase", "--abort"])
