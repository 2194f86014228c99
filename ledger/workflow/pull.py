"""
Pull-with-safety-net.

Git refuses to pull a rebase onto a dirty working tree. This workflow stashes
uncommitted work under a unique label, pulls with rebase, and puts the work
back. The pull result wins over stash tidiness: if the stash cannot be
restored cleanly it stays in the stash list and the caller is told where.
"""

import logging
import uuid
from typing import Callable

from ledger.git import errors
from ledger.git.branch import get_current_branch, get_divergence_count, ref_exists
from ledger.git.diff import get_conflicted_files
from ledger.git.remote import fetch, pull_rebase, rebase_abort
from ledger.git.runner import GitExecutor, GitResult
from ledger.git.stash import find_stash, stash_pop, stash_push
from ledger.git.status import has_uncommitted_changes
from ledger.lib.config import LedgerConfig
from ledger.workflow.fsm import PULL_STATES, PULL_TRANSITIONS, WorkflowMachine
from ledger.workflow.results import OperationResult, StashSafetyNet

logger = logging.getLogger(__name__)

NO_UPSTREAM_MESSAGE = "No remote tracking branch (will be created on push)"


def _commits(n: int) -> str:
    return f"{n} commit{'s' if n != 1 else ''}"


def _error_text(result: GitResult) -> str:
    return result.stderr.strip() or result.stdout.strip() or f"git exited with {result.returncode}"


class PullWorkflow(WorkflowMachine):
    """fetching -> checking_divergence -> (up_to_date | stashing -> pulling -> restoring) -> done"""

    NAME = "pull"
    STATES = PULL_STATES
    TRANSITIONS = PULL_TRANSITIONS

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
        self.safety_net: StashSafetyNet | None = None

    def run(self) -> OperationResult:
        remote = self.config.remote
        self.start()

        branch = get_current_branch(self.git)
        if branch is None:
            self.fail()
            return OperationResult(False, "Not on a branch (detached HEAD state)")

        fetched = fetch(self.git, remote, branch)
        if not fetched.success:
            if errors.is_no_tracking(fetched.output):
                self.no_upstream()
                return OperationResult(True, NO_UPSTREAM_MESSAGE)
            self.fail()
            return OperationResult(False, f"Fetch from {remote} failed: {_error_text(fetched)}")
        self.fetched()

        behind = self._behind_count(remote, branch)
        if behind is None:
            self.no_upstream()
            return OperationResult(True, NO_UPSTREAM_MESSAGE)
        if behind == 0:
            self.nothing_to_pull()
            self.finish()
            return OperationResult(True, "Already up to date")

        if has_uncommitted_changes(self.git):
            self.protect_changes()
            failure = self._take_safety_net()
            if failure:
                self.fail()
                return failure

        self.pull()
        pulled = pull_rebase(self.git, remote, branch)
        if not pulled.success:
            return self._pull_failed(pulled)

        if self.safety_net is None:
            self.finish()
            return OperationResult(True, f"Pulled {_commits(behind)} from {remote}")

        self.restore()
        result = self._restore_safety_net(behind)
        self.finish()
        return result

    def _behind_count(self, remote: str, branch: str) -> int | None:
        """Commits on the remote branch that HEAD lacks, None if there is no remote ref."""
        remote_ref = f"{remote}/{branch}"
        if not ref_exists(self.git, f"refs/remotes/{remote_ref}"):
            # Fetch without a configured refspec only updates FETCH_HEAD
            remote_ref = "FETCH_HEAD"
            if not ref_exists(self.git, remote_ref):
                return None
        counts = get_divergence_count(self.git, remote_ref, "HEAD")
        return counts[0] if counts else None

    def _take_safety_net(self) -> OperationResult | None:
        """Stash everything, including untracked files. Returns a result only on failure."""
        net = StashSafetyNet(label=f"{self.config.stash_label} {uuid.uuid4().hex[:12]}")
        stashed = stash_push(self.git, net.label, include_untracked=True)
        if not stashed.success:
            return OperationResult(False, f"Could not stash your changes before pulling: {_error_text(stashed)}")

        entry = find_stash(self.git, net.label)
        if entry is None:
            # "No local changes to save": nothing needed protecting
            logger.info(f"[PULL] {self.repo_label}: nothing was stashed")
            return None
        net.ref = entry.ref
        self.safety_net = net
        logger.info(f"[PULL] {self.repo_label}: stashed uncommitted changes as {net.ref} ({net.label})")
        return None

    def _pop_safety_net(self) -> tuple[str, GitResult]:
        """Pop our stash, looked up again by label since stash refs shift."""
        entry = find_stash(self.git, self.safety_net.label)
        if entry is None:
            missing = GitResult(returncode=1, stdout="", stderr=f"stash '{self.safety_net.label}' not found")
            return self.safety_net.ref, missing
        return entry.ref, stash_pop(self.git, entry.ref)

    def _restore_safety_net(self, behind: int) -> OperationResult:
        net = self.safety_net
        ref, popped = self._pop_safety_net()

        if popped.success:
            net.consumed = True
            return OperationResult(
                True,
                f"Pulled {_commits(behind)} and restored your uncommitted changes",
                auto_stashed=True,
            )

        if errors.is_conflict(popped.output):
            # Changes are on disk with conflict markers; git keeps the entry as a backup
            net.consumed = True
            conflicted = get_conflicted_files(self.git)
            where = f" in {', '.join(conflicted)}" if conflicted else ""
            logger.warning(f"[PULL] {self.repo_label}: restoring {ref} conflicted{where}")
            return OperationResult(
                True,
                f"Pulled {_commits(behind)}, but restoring your changes caused conflicts{where}. "
                f"Resolve them manually, then run `git stash drop {ref}`.",
                had_conflicts=True,
                auto_stashed=True,
                conflicted_files=conflicted,
                stash_ref=ref,
            )

        net.left_behind = True
        logger.warning(f"[PULL] {self.repo_label}: could not restore {ref}, leaving it in the stash list: "
                       f"{_error_text(popped)}")
        return OperationResult(
            True,
            f"Pulled successfully. Your changes are in the stash ({ref}); "
            f"run `git stash pop {ref}` to restore them.",
            auto_stashed=True,
            stash_ref=ref,
        )

    def _pull_failed(self, pulled: GitResult) -> OperationResult:
        """Leave the repository as it was before the pull, then report."""
        output = pulled.output
        conflict = errors.is_conflict(output)

        if conflict:
            aborted = rebase_abort(self.git)
            if not aborted.success:
                logger.warning(f"[PULL] {self.repo_label}: rebase --abort failed: {_error_text(aborted)}")

        stash_note = self._restore_after_failure()
        auto_stashed = self.safety_net is not None
        stash_ref = self.safety_net.ref if auto_stashed and self.safety_net.left_behind else None

        if conflict:
            self.fail()
            return OperationResult(
                False,
                "Pull failed due to conflicts with incoming changes. "
                "Your branch was left as it was; please resolve manually." + stash_note,
                had_conflicts=True,
                auto_stashed=auto_stashed,
                stash_ref=stash_ref,
            )

        if errors.is_no_tracking(output):
            self.no_upstream()
            return OperationResult(True, NO_UPSTREAM_MESSAGE + stash_note, auto_stashed=auto_stashed,
                                   stash_ref=stash_ref)

        self.fail()
        return OperationResult(
            False,
            f"Pull failed: {_error_text(pulled)}" + stash_note,
            auto_stashed=auto_stashed,
            stash_ref=stash_ref,
        )

    def _restore_after_failure(self) -> str:
        """Best-effort stash pop after a failed pull. Returns a note for the message."""
        net = self.safety_net
        if net is None:
            return ""

        ref, popped = self._pop_safety_net()
        if popped.success:
            net.consumed = True
            return ""

        net.ref = ref
        net.left_behind = True
        logger.warning(f"[PULL] {self.repo_label}: could not restore {ref} after failed pull: "
                       f"{_error_text(popped)}")
        return f" Your uncommitted changes are still in the stash ({ref}); run `git stash pop {ref}` to restore them."
