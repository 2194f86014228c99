"""
SyncOrchestrator: the entry point callers use for workflows and diff queries.

Each call borrows a RepositoryContext from the manager (the active one, or
the one for an explicit path) and gives it back when the call returns.
Workflows that mutate the working tree run under the context's exclusive
lock, so two workflows on one repository never interleave their commands.
"""

import logging
from pathlib import Path
from typing import Callable

from ledger.git.commit import stage_all, stage_file, unstage_all, unstage_file
from ledger.git import diff as git_diff
from ledger.git import errors
from ledger.git.branch import find_base_branch, get_commit_count
from ledger.git.runner import GitExecutor, GitResult
from ledger.git.stash import StashEntry, list_stashes
from ledger.git.status import get_branch_tracking, get_staged_stat, get_status_entries, get_unstaged_stat
from ledger.lib.diffparse import FileDiff, diff_totals, parse_diff, parse_stat_totals
from ledger.repos.context import RepositoryContext
from ledger.repos.locking import LockTimeout
from ledger.repos.manager import RepositoryManager
from ledger.workflow.commit import CommitWorkflow
from ledger.workflow.promote import PromoteWorkflow
from ledger.workflow.pull import PullWorkflow
from ledger.workflow.results import BranchDiff, CommitDiff, OperationResult, WorkingStatus

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[str, str, str], None]


class SyncOrchestrator:
    """Runs compound git workflows against repositories owned by a manager."""

    def __init__(self, manager: RepositoryManager, on_transition: TransitionCallback | None = None):
        self.manager = manager
        self.on_transition = on_transition

    def _context(self, path: Path | str | None) -> RepositoryContext:
        """Borrow a context.

        Raises:
            NoRepositorySelected: path is None and no repository is active
            InvalidRepository: path is not a usable repository
        """
        if path is None:
            return self.manager.require_active()
        ctx = self.manager.get(path)
        if ctx is None:
            ctx = self.manager.open(path, activate=False)
        return ctx

    def _busy(self, ctx: RepositoryContext, error: LockTimeout) -> OperationResult:
        logger.warning(f"[SYNC] {ctx.path}: {error}")
        return OperationResult(False, f"{ctx.path} is busy with another operation; try again shortly")

    # Compound workflows

    def pull(self, path: Path | str | None = None) -> OperationResult:
        """Pull the current branch with rebase, protecting uncommitted work."""
        ctx = self._context(path)
        try:
            with ctx.exclusive():
                return PullWorkflow(ctx.git, ctx.config, ctx.name, self.on_transition).run()
        except LockTimeout as e:
            return self._busy(ctx, e)

    def commit(
        self,
        message: str,
        description: str | None = None,
        force: bool = False,
        path: Path | str | None = None,
    ) -> OperationResult:
        """Commit staged changes unless the remote branch has moved ahead."""
        ctx = self._context(path)
        try:
            with ctx.exclusive():
                workflow = CommitWorkflow(ctx.git, ctx.config, ctx.name, self.on_transition)
                return workflow.run(message, description, force=force)
        except LockTimeout as e:
            return self._busy(ctx, e)

    def promote_workspace(self, workspace: Path | str, path: Path | str | None = None) -> OperationResult:
        """Move a workspace's uncommitted changes onto a new staged branch."""
        ctx = self._context(path)
        try:
            with ctx.exclusive():
                workflow = PromoteWorkflow(ctx.git, ctx.config, ctx.name, self.on_transition)
                return workflow.run(Path(workspace))
        except LockTimeout as e:
            return self._busy(ctx, e)

    # Staging

    def stage_file(self, file_path: str, path: Path | str | None = None) -> OperationResult:
        return self._update_index(
            path,
            lambda git: stage_file(git, file_path),
            f"Staged {file_path}",
            f"stage {file_path}",
        )

    def unstage_file(self, file_path: str, path: Path | str | None = None) -> OperationResult:
        """Remove a path from the index, keeping its working tree changes."""
        return self._update_index(
            path,
            lambda git: unstage_file(git, file_path),
            f"Unstaged {file_path}",
            f"unstage {file_path}",
        )

    def stage_all(self, path: Path | str | None = None) -> OperationResult:
        """Stage every change, untracked files included."""
        return self._update_index(path, stage_all, "Staged all changes", "stage all changes")

    def unstage_all(self, path: Path | str | None = None) -> OperationResult:
        return self._update_index(path, unstage_all, "Unstaged all changes", "unstage all changes")

    def _update_index(
        self,
        path: Path | str | None,
        operation: Callable[[GitExecutor], GitResult],
        done: str,
        action: str,
    ) -> OperationResult:
        ctx = self._context(path)
        try:
            with ctx.exclusive():
                result = operation(ctx.git)
        except LockTimeout as e:
            return self._busy(ctx, e)

        if not result.success:
            logger.warning(f"[SYNC] {ctx.path}: could not {action}: {result.stderr.strip()}")
            return OperationResult(False, f"Could not {action}: {errors.first_line(result.output)}")
        logger.info(f"[SYNC] {ctx.path}: {done}")
        return OperationResult(True, done)

    # Read-only queries

    def working_diff(self, staged: bool = False, path: Path | str | None = None) -> list[FileDiff]:
        """Parsed diff of uncommitted changes. Empty on git failure."""
        ctx = self._context(path)
        result = git_diff.get_working_diff(ctx.git, staged=staged)
        if not result.success:
            logger.warning(f"[SYNC] {ctx.path}: git diff failed: {result.stderr.strip()}")
            return []
        return parse_diff(result.stdout)

    def file_diff(self, file_path: str, staged: bool = False, path: Path | str | None = None) -> FileDiff | None:
        """Parsed diff of one file, or None if it has no changes."""
        ctx = self._context(path)
        result = git_diff.get_working_diff(ctx.git, staged=staged, path=file_path)
        if not result.success:
            logger.warning(f"[SYNC] {ctx.path}: git diff {file_path} failed: {result.stderr.strip()}")
            return None
        files = parse_diff(result.stdout)
        return files[0] if files else None

    def commit_diff(self, sha: str, path: Path | str | None = None) -> CommitDiff | None:
        ctx = self._context(path)
        result = git_diff.get_commit_diff(ctx.git, sha)
        if not result.success:
            logger.warning(f"[SYNC] {ctx.path}: git show {sha} failed: {result.stderr.strip()}")
            return None
        files = parse_diff(result.stdout)
        additions, deletions = diff_totals(files)
        return CommitDiff(sha=sha, files=files, total_additions=additions, total_deletions=deletions)

    def branch_diff(self, branch: str, path: Path | str | None = None) -> BranchDiff | None:
        """Diff of branch against the repository's base branch.

        Returns None when no base branch exists or git fails.
        """
        ctx = self._context(path)
        config = ctx.config
        base = find_base_branch(ctx.git, config.remote, config.base_branches)
        if base is None:
            return None

        result = git_diff.get_branch_diff(ctx.git, base, branch)
        if not result.success:
            logger.warning(f"[SYNC] {ctx.path}: branch diff {base}...{branch} failed: {result.stderr.strip()}")
            return None

        files = parse_diff(result.stdout)
        additions, deletions = diff_totals(files)
        return BranchDiff(
            branch_name=branch,
            base_branch=base.removeprefix(f"{config.remote}/"),
            files=files,
            total_additions=additions,
            total_deletions=deletions,
            commit_count=get_commit_count(ctx.git, f"{base}..{branch}"),
        )

    def working_status(self, path: Path | str | None = None) -> WorkingStatus:
        """Uncommitted files and line totals.

        Line totals come from the --stat summaries and are approximate.
        """
        ctx = self._context(path)
        entries = get_status_entries(ctx.git)

        additions = deletions = 0
        for stat in (get_unstaged_stat(ctx.git), get_staged_stat(ctx.git)):
            totals = parse_stat_totals(stat)
            if totals:
                additions += totals[1]
                deletions += totals[2]

        return WorkingStatus(
            has_changes=bool(entries),
            files=entries,
            staged_count=sum(1 for e in entries if e.staged),
            unstaged_count=sum(1 for e in entries if e.unstaged),
            additions=additions,
            deletions=deletions,
            tracking=get_branch_tracking(ctx.git),
        )

    def list_stashes(self, path: Path | str | None = None) -> list[StashEntry]:
        return list_stashes(self._context(path).git)
