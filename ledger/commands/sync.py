"""
ledger pull / commit / promote - Run the compound sync workflows.
"""

from ledger.commands.output import emit_result
from ledger.workflow.orchestrator import SyncOrchestrator


def cmd_pull(args, orchestrator: SyncOrchestrator) -> int:
    """Pull the current branch, stashing and restoring uncommitted work."""
    return emit_result(orchestrator.pull(), args.json)


def cmd_commit(args, orchestrator: SyncOrchestrator) -> int:
    """Commit staged changes, refusing if the remote moved ahead (unless --force)."""
    result = orchestrator.commit(args.message, description=args.description, force=args.force)
    code = emit_result(result, args.json)
    if not args.json and result.behind_count:
        print("Run 'ledger pull' first, or 'ledger commit --force' to commit anyway.")
    return code


def cmd_promote(args, orchestrator: SyncOrchestrator) -> int:
    """Turn a workspace's uncommitted changes into a new staged branch."""
    result = orchestrator.promote_workspace(args.workspace)
    code = emit_result(result, args.json)
    if not args.json and result.success:
        print(f"Next: git commit   (on branch {result.branch_name})")
    return code
