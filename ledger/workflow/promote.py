"""
Workspace-to-branch promotion.

A workspace is a disposable working directory (typically a detached git
worktree) whose edits were never committed. Promotion carries those edits
onto a new, properly named branch in the repository and stages them, leaving
the commit itself to a human.

If anything fails after the branch exists, the branch is kept for inspection
rather than deleted.
"""

import logging
from pathlib import Path
from typing import Callable

from ledger.git import errors
from ledger.git.branch import branch_exists, create_branch, find_base_branch
from ledger.git.commit import stage_all
from ledger.git.diff import apply_patch, extract_working_tree_patch, has_changes_vs_head
from ledger.git.runner import GitExecutor
from ledger.git.status import get_untracked_files, has_uncommitted_changes
from ledger.lib.config import LedgerConfig
from ledger.lib.constants import BRANCH_UNSAFE, MAX_BRANCH_NAME_LEN
from ledger.workflow.fsm import PROMOTE_STATES, PROMOTE_TRANSITIONS, WorkflowMachine
from ledger.workflow.results import OperationResult

logger = logging.getLogger(__name__)


def branch_name_for(folder: str, prefix: str = "") -> str:
    """Turn a workspace folder name into a valid branch name."""
    name = BRANCH_UNSAFE.sub("-", folder).strip("-./")
    if name.endswith(".lock"):
        name = name[:-len(".lock")]
    name = name[:MAX_BRANCH_NAME_LEN].rstrip("-./") or "workspace"
    return f"{prefix}{name}"


class PromoteWorkflow(WorkflowMachine):
    """resolving_base -> creating_branch -> extracting_patch -> applying_patch -> staging -> done"""

    NAME = "promote"
    STATES = PROMOTE_STATES
    TRANSITIONS = PROMOTE_TRANSITIONS

    def __init__(
        self,
        git: GitExecutor,
        config: LedgerConfig,
        repo_label: str = "",
        on_transition: Callable[[str, str, str], None] | None = None,
    ):
        super().__init__(repo_label or str(git.cwd), on_transition)
        self.git = git
        self.config = config

    def run(self, workspace: Path) -> OperationResult:
        self.start()
        workspace = Path(workspace).expanduser().resolve()
        workspace_git = GitExecutor(
            workspace,
            timeout=self.config.git_timeout,
            on_command=self.git.on_command,
        )

        problem = self._check_preconditions(workspace, workspace_git)
        if problem:
            self.fail()
            return OperationResult(False, problem)

        base = find_base_branch(self.git, self.config.remote, self.config.base_branches)
        if base is None:
            self.fail()
            looked_for = ", ".join(
                [f"{self.config.remote}/{b}" for b in self.config.base_branches] + self.config.base_branches
            )
            return OperationResult(False, f"No base branch found (looked for {looked_for})")
        self.base_found()

        branch = self._unique_branch_name(workspace.name)
        created = create_branch(self.git, branch, base)
        if not created.success:
            self.fail()
            return OperationResult(False, f"Could not create branch {branch} from {base}: "
                                          f"{errors.first_line(created.output)}")
        logger.info(f"[PROMOTE] {self.repo_label}: created {branch} from {base}")
        self.branch_created()

        patch = extract_working_tree_patch(workspace_git)
        if not patch.success:
            self.fail()
            return OperationResult(
                False,
                f"Could not read changes from {workspace}: {errors.first_line(patch.output)}. "
                f"Branch {branch} was left at {base}.",
                branch_name=branch,
            )
        self.patch_extracted()

        applied = apply_patch(self.git, patch.stdout_bytes)
        if not applied.success:
            self.fail()
            paths = errors.apply_failure_paths(applied.stderr)
            where = f" (conflicts in: {', '.join(paths)})" if paths else f": {errors.first_line(applied.output)}"
            logger.warning(f"[PROMOTE] {self.repo_label}: patch did not apply onto {branch}{where}")
            return OperationResult(
                False,
                f"Could not apply workspace changes onto {branch}{where}. "
                f"The branch was left for manual inspection.",
                had_conflicts=bool(paths),
                conflicted_files=paths,
                branch_name=branch,
            )
        self.patch_applied()

        staged = stage_all(self.git)
        if not staged.success:
            self.fail()
            return OperationResult(
                False,
                f"Applied workspace changes onto {branch} but staging failed: "
                f"{errors.first_line(staged.output)}",
                branch_name=branch,
            )

        self.finish()
        return OperationResult(
            True,
            f"Created branch {branch} from {base} with the workspace changes staged. "
            "Review and commit when ready.",
            branch_name=branch,
        )

    def _check_preconditions(self, workspace: Path, workspace_git: GitExecutor) -> str | None:
        """Return a message describing why promotion cannot start, or None."""
        if workspace == self.git.cwd.resolve():
            return "The workspace is the repository itself; nothing to promote"
        if not workspace.is_dir():
            return f"Workspace not found: {workspace}"

        inside = workspace_git.run(["rev-parse", "--is-inside-work-tree"])
        if not inside.success or inside.stdout.strip() != "true":
            return f"Workspace is not a git working tree: {workspace}"

        if not (has_changes_vs_head(workspace_git) or get_untracked_files(workspace_git)):
            return f"Workspace has no changes to promote: {workspace}"

        if has_uncommitted_changes(self.git):
            return (f"{self.git.cwd} has uncommitted changes; commit or stash them "
                    "before promoting a workspace")
        return None

    def _unique_branch_name(self, folder: str) -> str:
        base_name = branch_name_for(folder, self.config.branch_prefix)
        name = base_name
        suffix = 2
        while branch_exists(self.git, name):
            name = f"{base_name}-{suffix}"
            suffix += 1
        return name
