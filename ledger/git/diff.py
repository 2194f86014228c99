"""Git diff operations.

These return raw diff text; `ledger.lib.diffparse` turns it into structure.
"""

import os
import tempfile
from pathlib import Path

from ledger.git.runner import GitExecutor, GitResult
from ledger.git.status import get_untracked_files


def has_changes_vs_head(git: GitExecutor) -> bool:
    """Check if there are changes vs HEAD (staged or unstaged)."""
    result = git.run(["diff", "--quiet", "HEAD"])
    # exit 0 = no changes, exit 1 = has changes
    return result.returncode != 0


def get_working_diff(git: GitExecutor, staged: bool = False, path: str | None = None) -> GitResult:
    """Diff of the working tree (or index, if staged) against HEAD."""
    args = ["diff", "--no-color", "--no-ext-diff"]
    if staged:
        args.append("--cached")
    if path:
        args.extend(["--", path])
    return git.run(args)


def get_commit_diff(git: GitExecutor, sha: str) -> GitResult:
    """Diff introduced by a single commit.

    Merge commits are diffed against their first parent; the combined
    `diff --cc` format git uses by default has no per-file old side.
    """
    return git.run(["show", "--no-color", "--no-ext-diff", "--format=", "--patch", "-m", "--first-parent", sha])


def get_branch_diff(git: GitExecutor, base: str, branch: str) -> GitResult:
    """Diff of branch since it diverged from base (three-dot)."""
    return git.run(["diff", "--no-color", "--no-ext-diff", f"{base}...{branch}", "--patch", "--stat"])


def get_conflicted_files(git: GitExecutor) -> list[str]:
    """Get list of files with unresolved conflicts."""
    result = git.run(["diff", "--name-only", "--diff-filter=U"])
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]


def extract_working_tree_patch(git: GitExecutor) -> GitResult:
    """
    Build a patch of everything in the working tree that differs from HEAD.

    Tracked changes (staged and unstaged) come from `git diff HEAD`;
    untracked files are added as new-file sections.

    Returns:
        GitResult whose stdout_bytes is the patch, byte for byte. A failed
        result means the patch could not be produced.
    """
    tracked = git.run(["diff", "--binary", "--no-color", "--no-ext-diff", "HEAD"], binary=True)
    if not tracked.success:
        return tracked

    sections = [tracked.stdout_bytes] if tracked.stdout_bytes else []
    for path in get_untracked_files(git):
        untracked = git.run(
            ["diff", "--binary", "--no-color", "--no-ext-diff", "--no-index", "--", os.devnull, path],
            binary=True,
        )
        # --no-index exits 1 when the inputs differ
        if untracked.returncode not in (0, 1):
            return untracked
        if untracked.stdout_bytes:
            sections.append(untracked.stdout_bytes)

    patch = b"".join(section if section.endswith(b"\n") else section + b"\n" for section in sections)
    return GitResult(
        returncode=0,
        stdout=patch.decode("utf-8", errors="replace"),
        stderr="",
        stdout_bytes=patch,
    )


def apply_patch(git: GitExecutor, patch: bytes) -> GitResult:
    """Apply a patch to the working tree.

    `git apply` is all-or-nothing: on failure no file is touched.
    """
    fd, patch_path = tempfile.mkstemp(prefix="ledger-", suffix=".patch")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(patch)
        return git.run(["apply", "--whitespace=nowarn", str(Path(patch_path))])
    finally:
        os.unlink(patch_path)
