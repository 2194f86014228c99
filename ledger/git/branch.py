"""Git branch operations."""

from ledger.git.runner import GitExecutor, GitResult


def get_current_branch(git: GitExecutor) -> str | None:
    """Get the current branch name, or None if detached HEAD."""
    result = git.run(["branch", "--show-current"])
    if result.success:
        return result.stdout.strip() or None
    return None


def branch_exists(git: GitExecutor, branch: str) -> bool:
    """Check if a local branch exists."""
    result = git.run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"])
    return result.success


def ref_exists(git: GitExecutor, ref: str) -> bool:
    """Check if any ref (branch, remote branch, tag, sha) resolves."""
    result = git.run(["rev-parse", "--verify", "--quiet", ref])
    return result.success


def get_commit_sha(git: GitExecutor, ref: str = "HEAD") -> str | None:
    """Get the SHA of a ref."""
    result = git.run(["rev-parse", ref])
    if result.success:
        return result.stdout.strip()
    return None


def get_commit_count(git: GitExecutor, ref_range: str) -> int:
    """
    Get number of commits in a range.

    Args:
        git: Executor for the repository
        ref_range: Git ref range (e.g., "main..HEAD" or "abc123..HEAD")

    Returns:
        Number of commits, or 0 on error
    """
    result = git.run(["rev-list", "--count", ref_range])
    if result.success:
        try:
            return int(result.stdout.strip())
        except ValueError:
            pass
    return 0


def get_divergence_count(git: GitExecutor, ref1: str, ref2: str) -> tuple[int, int] | None:
    """
    Get how many commits ref1 and ref2 have diverged.

    Returns:
        Tuple of (commits_in_ref1_not_in_ref2, commits_in_ref2_not_in_ref1),
        or None on error.

    Example:
        get_divergence_count(git, "origin/main", "HEAD")
        -> (3, 5) means origin/main is 3 commits ahead, HEAD is 5 commits ahead
    """
    result = git.run(["rev-list", "--left-right", "--count", f"{ref1}...{ref2}"])
    if not result.success:
        return None
    parts = result.stdout.strip().split()
    if len(parts) != 2:
        return None
    try:
        return (int(parts[0]), int(parts[1]))
    except ValueError:
        return None


def create_branch(git: GitExecutor, branch: str, start_point: str) -> GitResult:
    """Create a branch at start_point and check it out.

    The new branch does not track start_point, even when it is a remote branch.
    """
    return git.run(["checkout", "--no-track", "-b", branch, start_point])


def find_base_branch(git: GitExecutor, remote: str, candidates: list[str]) -> str | None:
    """Find the branch new work should start from.

    Remote-tracking candidates are preferred over local ones, in the given
    order: origin/main, origin/master, main, master.
    Returns None if none of them exist.
    """
    for name in candidates:
        if ref_exists(git, f"refs/remotes/{remote}/{name}"):
            return f"{remote}/{name}"
    for name in candidates:
        if branch_exists(git, name):
            return name
    return None
