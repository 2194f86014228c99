"""
Configuration loader for ledger.

Settings come from an optional `.ledger.env` at the repository root (or an
explicit file). Every key has a default, so a repository without the file
works unchanged.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import envparse
from . import validate

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ledger.env"

DEFAULT_BASE_BRANCHES = ["main", "master"]


@dataclass
class LedgerConfig:
    """Per-repository settings from .ledger.env"""
    remote: str = "origin"
    git_timeout: int = 30  # Local git commands
    network_timeout: int = 60  # fetch / pull
    lock_timeout: int = 60  # Seconds to wait for a busy repository
    stash_label: str = "ledger-auto-stash-for-pull"
    base_branches: list[str] = field(default_factory=lambda: list(DEFAULT_BASE_BRANCHES))
    branch_prefix: str = ""  # Prepended to promoted workspace branch names
    process_lock: bool = True  # Also hold a file lock under the git dir


def config_from_env(env: dict[str, str]) -> LedgerConfig:
    """Build LedgerConfig from parsed KEY=value pairs.

    Raises:
        ValidationError: if a key is unknown or a value malformed
    """
    validate.validate(env, "config")

    defaults = LedgerConfig()
    base_branches = env.get("BASE_BRANCHES")
    return LedgerConfig(
        remote=env.get("REMOTE", defaults.remote),
        git_timeout=int(env.get("GIT_TIMEOUT", defaults.git_timeout)),
        network_timeout=int(env.get("NETWORK_TIMEOUT", defaults.network_timeout)),
        lock_timeout=int(env.get("LOCK_TIMEOUT", defaults.lock_timeout)),
        stash_label=env.get("STASH_LABEL", defaults.stash_label),
        base_branches=base_branches.split(",") if base_branches else defaults.base_branches,
        branch_prefix=env.get("BRANCH_PREFIX", defaults.branch_prefix),
        process_lock=env.get("PROCESS_LOCK", "true") == "true",
    )


def load_config(repo_path: Path | None = None, config_path: Path | None = None) -> LedgerConfig:
    """
    Load configuration for a repository.

    An explicit config_path must exist. Otherwise `<repo_path>/.ledger.env`
    is used when present, and defaults when not.
    """
    if config_path is not None:
        return config_from_env(envparse.load_env(config_path))

    if repo_path is not None:
        candidate = Path(repo_path) / CONFIG_FILENAME
        if candidate.exists():
            logger.debug(f"[CONFIG] Loading {candidate}")
            return config_from_env(envparse.load_env(candidate))

    return LedgerConfig()
