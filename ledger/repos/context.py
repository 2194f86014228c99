"""
Repository context: one working directory and the executor bound to it.
"""

import threading
from contextlib import contextmanager
from pathlib import Path

from ledger.git.runner import GitExecutor
from ledger.lib.config import LedgerConfig
from ledger.lib.constants import LOCK_FILENAME
from ledger.repos.locking import exclusive_lock


class RepositoryContext:
    """An open repository.

    Created and owned by RepositoryManager. Workflows borrow a context for
    one call and hold `exclusive()` while they mutate the working directory.
    """

    def __init__(self, path: Path, git_dir: Path, config: LedgerConfig, git: GitExecutor | None = None):
        self.path = path
        self.git_dir = git_dir
        self.config = config
        self.git = git or GitExecutor(
            path,
            timeout=config.git_timeout,
            network_timeout=config.network_timeout,
        )
        self.closed = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def lock_file(self) -> Path | None:
        if not self.config.process_lock:
            return None
        return self.git_dir / LOCK_FILENAME

    @contextmanager
    def exclusive(self, timeout: float | None = None):
        """Serialize compound workflows on this working directory.

        Raises:
            LockTimeout: if another workflow holds the context past timeout
        """
        if timeout is None:
            timeout = self.config.lock_timeout
        with exclusive_lock(self._lock, self.lock_file, timeout, f"repository lock for {self.path}"):
            yield self

    def is_busy(self) -> bool:
        return self._lock.locked()

    def __repr__(self) -> str:
        state = " closed" if self.closed else ""
        return f"<RepositoryContext {str(self.path)!r}{state}>"
