"""Workflow state machines using the transitions library.

Each compound workflow (pull, commit, promote) is a model on a
`transitions.Machine`. The workflow code fires a named trigger after each
step; a step fired out of order raises `transitions.MachineError`, which is
a bug in the workflow, not a git failure.

Usage:
    class PullWorkflow(WorkflowMachine):
        STATES = PULL_STATES
        TRANSITIONS = PULL_TRANSITIONS

    wf = PullWorkflow("repo")
    wf.start()      # idle -> fetching
    wf.fetched()    # fetching -> checking_divergence
"""

import logging
from typing import Callable

from transitions import Machine

logger = logging.getLogger(__name__)

TERMINAL_STATES = {"done", "failed", "refused"}

# Pull-with-safety-net
PULL_STATES = [
    "idle",
    "fetching",
    "checking_divergence",
    "up_to_date",
    "stashing",
    "pulling",
    "restoring",
    "done",
    "failed",
]

PULL_TRANSITIONS = [
    {"trigger": "start", "source": "idle", "dest": "fetching"},
    {"trigger": "fetched", "source": "fetching", "dest": "checking_divergence"},
    {"trigger": "nothing_to_pull", "source": "checking_divergence", "dest": "up_to_date"},
    {"trigger": "protect_changes", "source": "checking_divergence", "dest": "stashing"},
    {"trigger": "pull", "source": ["checking_divergence", "stashing"], "dest": "pulling"},
    {"trigger": "restore", "source": "pulling", "dest": "restoring"},
    {"trigger": "finish", "source": ["up_to_date", "pulling", "restoring"], "dest": "done"},
    # Nothing upstream yet: fine for a new branch
    {"trigger": "no_upstream", "source": ["fetching", "checking_divergence", "pulling"], "dest": "done"},
    {"trigger": "fail", "source": ["fetching", "checking_divergence", "stashing", "pulling"], "dest": "failed"},
]

# Commit-with-behind-check
COMMIT_STATES = [
    "idle",
    "checking_remote",
    "refused",
    "committing",
    "done",
    "failed",
]

COMMIT_TRANSITIONS = [
    {"trigger": "start", "source": "idle", "dest": "checking_remote"},
    {"trigger": "refuse", "source": "checking_remote", "dest": "refused"},
    {"trigger": "write_commit", "source": "checking_remote", "dest": "committing"},
    {"trigger": "finish", "source": "committing", "dest": "done"},
    {"trigger": "fail", "source": ["checking_remote", "committing"], "dest": "failed"},
]

# Workspace-to-branch promotion
PROMOTE_STATES = [
    "idle",
    "resolving_base",
    "creating_branch",
    "extracting_patch",
    "applying_patch",
    "staging",
    "done",
    "failed",
]

PROMOTE_TRANSITIONS = [
    {"trigger": "start", "source": "idle", "dest": "resolving_base"},
    {"trigger": "base_found", "source": "resolving_base", "dest": "creating_branch"},
    {"trigger": "branch_created", "source": "creating_branch", "dest": "extracting_patch"},
    {"trigger": "patch_extracted", "source": "extracting_patch", "dest": "applying_patch"},
    {"trigger": "patch_applied", "source": "applying_patch", "dest": "staging"},
    {"trigger": "finish", "source": "staging", "dest": "done"},
    {
        "trigger": "fail",
        "source": ["resolving_base", "creating_branch", "extracting_patch", "applying_patch", "staging"],
        "dest": "failed",
    },
]


class WorkflowMachine:
    """Base for workflow models.

    Subclasses set NAME, STATES and TRANSITIONS. Every transition is logged
    and appended to `history`; an optional on_transition(from, to, trigger)
    callback observes them too.
    """

    NAME = "workflow"
    STATES: list[str] = []
    TRANSITIONS: list[dict] = []

    def __init__(self, repo_label: str, on_transition: Callable[[str, str, str], None] | None = None):
        self.repo_label = repo_label
        self.on_transition = on_transition
        self.history: list[str] = ["idle"]

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="idle",
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.NAME} {self.repo_label}: {from_state} -> {to_state} ({trigger})")
        self.history.append(to_state)

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)
