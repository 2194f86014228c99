"""
Commit-with-behind-check.

Before committing, look at the remote counterpart of the current branch. If
it has moved on, refuse (unless forced) and report how far behind we are, so
the caller can pull first instead of diverging further.
"""

import logging
from typing import Callable

from ledger.git import errors
from ledger.git.branch import get_commit_sha, get_current_branch, get_divergence_count, ref_exists
from ledger.git.commit import commit, has_staged_changes
from ledger.git.remote import fetch, has_remote
from ledger.git.runner import GitExecutor
from ledger.lib.config import LedgerConfig
from ledger.workflow.fsm import COMMIT_STATES, COMMIT_TRANSITIONS, WorkflowMachine
from ledger.workflow.results import OperationResult

logger = logging.getLogger(__name__)


class CommitWorkflow(WorkflowMachine):
    """checking_remote -> (refused | committing -> done)"""

    NAME = "commit"
    STATES = COMMIT_STATES
    TRANSITIONS = COMMIT_TRANSITIONS

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

    def run(self, message: str, description: str | None = None, force: bool = False) -> OperationResult:
        self.start()

        if not message.strip():
            self.fail()
            return OperationResult(False, "Commit message is empty")

        branch = get_current_branch(self.git)
        if branch is None:
            self.fail()
            return OperationResult(False, "Not on a branch (detached HEAD state)")

        if not has_staged_changes(self.git):
            self.fail()
            return OperationResult(False, "Nothing staged to commit")

        behind = 0
        if not force:
            behind, failure = self._behind_count(branch)
            if failure:
                self.fail()
                return failure
            if behind > 0:
                self.refuse()
                remote_ref = f"{self.config.remote}/{branch}"
                logger.info(f"[COMMIT] {self.repo_label}: refusing, {remote_ref} is {behind} ahead")
                return OperationResult(
                    False,
                    f"{remote_ref} has {behind} new commit{'s' if behind != 1 else ''}. "
                    "Pull first, or commit anyway with force.",
                    behind_count=behind,
                )

        self.write_commit()
        committed = commit(self.git, message, description)
        if not committed.success:
            self.fail()
            return OperationResult(False, f"Commit failed: {errors.first_line(committed.output)}")

        sha = get_commit_sha(self.git)
        self.finish()
        return OperationResult(
            True,
            f"Committed {sha[:7]}: {message}" if sha else f"Committed: {message}",
            commit_sha=sha,
            behind_count=None if force else behind,
        )

    def _behind_count(self, branch: str) -> tuple[int, OperationResult | None]:
        """Fetch and count commits the remote branch has that HEAD lacks.

        A repository without remotes, or a branch never pushed, is 0 behind.
        """
        remote = self.config.remote
        if not has_remote(self.git):
            return 0, None

        fetched = fetch(self.git, remote, branch)
        if not fetched.success:
            if errors.is_no_tracking(fetched.output):
                return 0, None
            return 0, OperationResult(
                False,
                f"Could not check {remote} before committing: {errors.first_line(fetched.output)}. "
                "Retry, or commit anyway with force.",
            )

        remote_ref = f"refs/remotes/{remote}/{branch}"
        if not ref_exists(self.git, remote_ref):
            remote_ref = "FETCH_HEAD"
        counts = get_divergence_count(self.git, remote_ref, "HEAD")
        return (counts[0] if counts else 0), None
