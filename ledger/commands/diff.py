"""
ledger diff - Show parsed diffs.
"""

from ledger.commands.output import file_diffs_to_json, format_file_summary, print_json
from ledger.lib.diffparse import diff_totals
from ledger.workflow.orchestrator import SyncOrchestrator


def cmd_diff(args, orchestrator: SyncOrchestrator) -> int:
    """Show uncommitted, commit, or branch changes as files and totals."""
    if args.commit:
        commit_diff = orchestrator.commit_diff(args.commit)
        if commit_diff is None:
            print(f"ERROR: Could not read commit {args.commit}")
            return 1
        files = commit_diff.files
        title = f"Commit {args.commit}"
    elif args.branch:
        branch_diff = orchestrator.branch_diff(args.branch)
        if branch_diff is None:
            print(f"ERROR: Could not diff {args.branch} (no base branch, or unknown branch)")
            return 1
        files = branch_diff.files
        title = (f"Branch {args.branch} vs {branch_diff.base_branch} "
                 f"({branch_diff.commit_count} commit{'s' if branch_diff.commit_count != 1 else ''})")
    else:
        files = orchestrator.working_diff(staged=args.staged)
        title = "Staged changes" if args.staged else "Unstaged changes"

    if args.json:
        print_json(file_diffs_to_json(files))
        return 0

    if not files:
        print(f"{title}: none")
        return 0

    additions, deletions = diff_totals(files)
    print(f"{title}: {len(files)} file{'s' if len(files) != 1 else ''}, +{additions} -{deletions}")
    for f in files:
        print(format_file_summary(f))
        if args.hunks:
            for hunk in f.hunks:
                print(f"    @@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@ "
                      f"+{hunk.additions} -{hunk.deletions}")
    return 0
