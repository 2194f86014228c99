"""Compound git workflows and the orchestrator that runs them."""

from ledger.workflow.orchestrator import SyncOrchestrator
from ledger.workflow.results import (
    BranchDiff,
    CommitDiff,
    OperationResult,
    StashSafetyNet,
    WorkingStatus,
)

__all__ = [
    "SyncOrchestrator",
    "OperationResult",
    "StashSafetyNet",
    "BranchDiff",
    "CommitDiff",
    "WorkingStatus",
]
