"""
ledger status - Summarize uncommitted work and safety-net stashes.
"""

from ledger.commands.output import print_json
from ledger.workflow.orchestrator import SyncOrchestrator


def cmd_status(args, orchestrator: SyncOrchestrator) -> int:
    status = orchestrator.working_status()
    label = orchestrator.manager.require_active().config.stash_label
    leftover = [s for s in orchestrator.list_stashes() if label in s.message]
    tracking = status.tracking

    if args.json:
        print_json({
            "branch": tracking.branch if tracking else None,
            "upstream": tracking.upstream if tracking else None,
            "ahead": tracking.ahead if tracking else 0,
            "behind": tracking.behind if tracking else 0,
            "has_changes": status.has_changes,
            "staged_count": status.staged_count,
            "unstaged_count": status.unstaged_count,
            "additions": status.additions,
            "deletions": status.deletions,
            "files": [
                {"path": e.path, "staged": e.staged, "unstaged": e.unstaged, "untracked": e.untracked}
                for e in status.files
            ],
            "safety_net_stashes": [s.ref for s in leftover],
        })
        return 0

    if tracking:
        line = f"On branch {tracking.branch}" if tracking.branch else "HEAD detached"
        if tracking.upstream:
            line += f" (tracking {tracking.upstream}, {tracking.ahead} ahead, {tracking.behind} behind)"
        print(line)

    if not status.has_changes:
        print("Working tree clean")
    else:
        print(f"{len(status.files)} changed file{'s' if len(status.files) != 1 else ''} "
              f"({status.staged_count} staged, {status.unstaged_count} unstaged), "
              f"+{status.additions} -{status.deletions}")
        for entry in status.files:
            print(f"  {entry.index}{entry.worktree} {entry.path}")

    if leftover:
        print()
        print("Safety-net stashes left behind by an earlier pull:")
        for s in leftover:
            print(f"  {s.ref}  {s.message}")
        print("Restore one with: git stash pop <ref>")
    return 0
