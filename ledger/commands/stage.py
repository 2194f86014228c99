"""
ledger stage / unstage - Move changes in and out of the index.
"""

from ledger.commands.output import emit_result
from ledger.workflow.orchestrator import SyncOrchestrator


def cmd_stage(args, orchestrator: SyncOrchestrator) -> int:
    """Stage one path, or every change when no path is given."""
    if args.path:
        result = orchestrator.stage_file(args.path)
    else:
        result = orchestrator.stage_all()
    return emit_result(result, args.json)


def cmd_unstage(args, orchestrator: SyncOrchestrator) -> int:
    if args.path:
        result = orchestrator.unstage_file(args.path)
    else:
        result = orchestrator.unstage_all()
    return emit_result(result, args.json)
