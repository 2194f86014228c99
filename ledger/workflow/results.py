"""Result types returned to callers of the sync workflows and diff queries."""

from dataclasses import dataclass, field

from ledger.git.status import BranchTracking, StatusEntry
from ledger.lib.diffparse import FileDiff


@dataclass
class OperationResult:
    """Outcome of a compound operation.

    Anticipated failures (divergence, conflicts, missing upstream) are
    reported here with success=False or a flag, never raised.
    """
    success: bool
    message: str
    had_conflicts: bool = False
    auto_stashed: bool = False
    branch_name: str | None = None
    behind_count: int | None = None
    conflicted_files: list[str] = field(default_factory=list)
    stash_ref: str | None = None  # Safety-net stash still in the stash list
    commit_sha: str | None = None

    def to_dict(self) -> dict:
        data = {"success": self.success, "message": self.message}
        if self.had_conflicts:
            data["had_conflicts"] = True
        if self.auto_stashed:
            data["auto_stashed"] = True
        if self.branch_name:
            data["branch_name"] = self.branch_name
        if self.behind_count is not None:
            data["behind_count"] = self.behind_count
        if self.conflicted_files:
            data["conflicted_files"] = list(self.conflicted_files)
        if self.stash_ref:
            data["stash_ref"] = self.stash_ref
        if self.commit_sha:
            data["commit_sha"] = self.commit_sha
        return data


@dataclass
class StashSafetyNet:
    """The stash a workflow took to protect uncommitted work."""
    label: str
    ref: str | None = None
    consumed: bool = False
    left_behind: bool = False


@dataclass
class BranchDiff:
    """Changes on a branch since it left its base branch."""
    branch_name: str
    base_branch: str
    files: list[FileDiff]
    total_additions: int
    total_deletions: int
    commit_count: int


@dataclass
class CommitDiff:
    """Changes introduced by one commit."""
    sha: str
    files: list[FileDiff]
    total_additions: int
    total_deletions: int


@dataclass
class WorkingStatus:
    """Summary of uncommitted work."""
    has_changes: bool
    files: list[StatusEntry]
    staged_count: int
    unstaged_count: int
    additions: int
    deletions: int
    tracking: BranchTracking | None = None
