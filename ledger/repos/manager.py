"""
Registry of open repositories.

There is no module-level "current repository". Code that needs one asks a
RepositoryManager for `require_active()`, and code working on several
repositories at once holds the contexts returned by `open()`.
"""

import logging
import threading
from pathlib import Path
from typing import Callable

from ledger.git.runner import run_git
from ledger.lib.config import LedgerConfig, load_config
from ledger.repos.context import RepositoryContext

logger = logging.getLogger(__name__)

SyncCallback = Callable[[Path | None], None]


class NoRepositorySelected(Exception):
    """An operation needed the active repository and none is open."""

    def __init__(self, message: str = "No repository selected. Open a repository first."):
        super().__init__(message)


class InvalidRepository(Exception):
    """A path does not denote a usable git working tree."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Not a usable git repository: {path} ({reason})")


def resolve_repository(path: Path) -> tuple[Path, Path]:
    """
    Find the working tree root and git dir for path.

    Raises:
        InvalidRepository: if path is missing, bare, or not inside a repo
    """
    path = Path(path).expanduser()
    if not path.is_dir():
        raise InvalidRepository(path, "directory does not exist")

    result = run_git(["rev-parse", "--show-toplevel", "--absolute-git-dir"], path)
    if not result.success:
        reason = result.stderr.strip().splitlines()[0] if result.stderr.strip() else "git rev-parse failed"
        raise InvalidRepository(path, reason)

    lines = result.stdout.strip().splitlines()
    if len(lines) != 2:
        raise InvalidRepository(path, "no working tree")
    return Path(lines[0]).resolve(), Path(lines[1]).resolve()


class RepositoryManager:
    """Owns every RepositoryContext in the process.

    At most one context is active for callers that do not name a
    repository. A single sync callback, if set, is told about every change
    of the active repository.
    """

    def __init__(self, config_loader: Callable[[Path], LedgerConfig] | None = None):
        self._config_loader = config_loader or (lambda repo_path: load_config(repo_path))
        self._contexts: dict[Path, RepositoryContext] = {}
        self._active: Path | None = None
        self._sync_callback: SyncCallback | None = None
        self._lock = threading.RLock()

    def open(self, path: Path | str, activate: bool = True) -> RepositoryContext:
        """
        Open (or return the already open) context for path.

        Args:
            path: Any directory inside the working tree
            activate: Make it the active repository for context-free callers

        Raises:
            InvalidRepository: if path is not a usable repository
        """
        root, git_dir = resolve_repository(Path(path))
        with self._lock:
            ctx = self._contexts.get(root)
            if ctx is None:
                ctx = RepositoryContext(root, git_dir, self._config_loader(root))
                self._contexts[root] = ctx
                logger.info(f"[REPO] Opened {root}")
            if activate:
                self._set_active(root)
            return ctx

    def close(self, path: Path | str) -> bool:
        """Release the context for path. Returns False if it was not open."""
        with self._lock:
            key = self._key_for(path)
            if key is None:
                return False
            ctx = self._contexts.pop(key)
            ctx.closed = True
            logger.info(f"[REPO] Closed {key}")
            if self._active == key:
                self._set_active(None)
            return True

    def close_all(self) -> None:
        with self._lock:
            for key in list(self._contexts):
                self.close(key)

    def get(self, path: Path | str) -> RepositoryContext | None:
        """Return the open context for path without changing the active one."""
        with self._lock:
            key = self._key_for(path)
            return self._contexts[key] if key is not None else None

    def get_active(self) -> RepositoryContext | None:
        with self._lock:
            if self._active is None:
                return None
            return self._contexts.get(self._active)

    def require_active(self) -> RepositoryContext:
        """Return the active context.

        Raises:
            NoRepositorySelected: if none is active
        """
        ctx = self.get_active()
        if ctx is None:
            raise NoRepositorySelected()
        return ctx

    def list_open(self) -> list[RepositoryContext]:
        with self._lock:
            return list(self._contexts.values())

    def set_sync_callback(self, callback: SyncCallback | None) -> None:
        """Register the observer of active-repository changes.

        Replaces any previous callback; None removes it.
        """
        with self._lock:
            self._sync_callback = callback

    def _key_for(self, path: Path | str) -> Path | None:
        candidate = Path(path).expanduser().resolve()
        if candidate in self._contexts:
            return candidate
        # Allow a subdirectory of an open working tree; innermost root wins
        for root in sorted(self._contexts, key=lambda p: len(p.parts), reverse=True):
            if candidate.is_relative_to(root):
                return root
        return None

    def _set_active(self, root: Path | None) -> None:
        if self._active == root:
            return
        previous = self._active
        self._active = root
        logger.info(f"[REPO] Active repository: {previous} -> {root}")
        if self._sync_callback:
            self._sync_callback(root)
