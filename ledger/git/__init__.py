"""Git operations for ledger.

Every helper takes the `GitExecutor` of the repository it acts on; nothing
here knows about a "current" repository.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
  Examples: fetch(), pull_rebase(), stash_push(), commit()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: has_uncommitted_changes(), branch_exists(), ref_exists()
- Functions returning parsed values (str, int, list): Return empty/zero/None on failure.
  Examples: get_status_entries() -> [], get_commit_count() -> 0
"""

from ledger.git.runner import (
    GitExecutor,
    GitResult,
    run_git,
)
from ledger.git.status import (
    StatusEntry,
    BranchTracking,
    has_uncommitted_changes,
    get_status_entries,
    get_branch_tracking,
    get_staged_stat,
    get_unstaged_stat,
    get_untracked_files,
)
from ledger.git.diff import (
    has_changes_vs_head,
    get_working_diff,
    get_commit_diff,
    get_branch_diff,
    get_conflicted_files,
    extract_working_tree_patch,
    apply_patch,
)
from ledger.git.branch import (
    get_current_branch,
    branch_exists,
    ref_exists,
    get_commit_sha,
    get_commit_count,
    get_divergence_count,
    create_branch,
    find_base_branch,
)
from ledger.git.commit import (
    stage_all,
    stage_file,
    unstage_file,
    unstage_all,
    has_staged_changes,
    commit,
)
from ledger.git.remote import (
    has_remote,
    fetch,
    pull_rebase,
    rebase_abort,
)
from ledger.git.stash import (
    StashEntry,
    stash_push,
    stash_pop,
    list_stashes,
    find_stash,
)

__all__ = [
    # runner
    "GitExecutor",
    "GitResult",
    "run_git",
    # status
    "StatusEntry",
    "BranchTracking",
    "has_uncommitted_changes",
    "get_status_entries",
    "get_branch_tracking",
    "get_staged_stat",
    "get_unstaged_stat",
    "get_untracked_files",
    # diff
    "has_changes_vs_head",
    "get_working_diff",
    "get_commit_diff",
    "get_branch_diff",
    "get_conflicted_files",
    "extract_working_tree_patch",
    "apply_patch",
    # branch
    "get_current_branch",
    "branch_exists",
    "ref_exists",
    "get_commit_sha",
    "get_commit_count",
    "get_divergence_count",
    "create_branch",
    "find_base_branch",
    # commit
    "stage_all",
    "stage_file",
    "unstage_file",
    "unstage_all",
    "has_staged_changes",
    "commit",
    # remote
    "has_remote",
    "fetch",
    "pull_rebase",
    "rebase_abort",
    # stash
    "StashEntry",
    "stash_push",
    "stash_pop",
    "list_stashes",
    "find_stash",
]
