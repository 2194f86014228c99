"""
Lock management for repository contexts.

Two layers guard a working directory:
- a threading lock on the RepositoryContext, for workflows in this process
- an flock on a file under the repository's git dir, for other processes
"""

import fcntl
import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class LockTimeout(Exception):
    """Lock acquisition timed out."""

    def __init__(self, lock_name: str, timeout: float):
        self.lock_name = lock_name
        self.timeout = timeout
        super().__init__(f"Could not acquire {lock_name} within {timeout}s")


def _deadline(timeout: float) -> float | None:
    """0 or less means wait forever."""
    return time.monotonic() + timeout if timeout > 0 else None


def _remaining(deadline: float | None) -> float:
    if deadline is None:
        return -1
    return max(deadline - time.monotonic(), 0)


@contextmanager
def file_lock(lock_file: Path, timeout: float, lock_name: str):
    """
    Hold an exclusive flock on lock_file for the duration of the block.

    Note: lock files are never deleted. Deleting creates a race where two
    processes end up holding "exclusive" locks on different inodes with the
    same path.
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)
    deadline = _deadline(timeout)

    fd = open(lock_file, 'w')
    try:
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if deadline is not None and time.monotonic() > deadline:
                    raise LockTimeout(lock_name, timeout)
                time.sleep(POLL_INTERVAL)

        fd.write(f"{os.getpid()}\n")
        fd.flush()
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        fd.close()


@contextmanager
def exclusive_lock(
    thread_lock: threading.Lock,
    lock_file: Path | None,
    timeout: float,
    lock_name: str,
):
    """
    Acquire the in-process lock, then (optionally) the file lock.

    A caller that finds the repository busy waits until the holder finishes
    or the timeout expires.
    """
    deadline = _deadline(timeout)
    if not thread_lock.acquire(timeout=_remaining(deadline)):
        raise LockTimeout(lock_name, timeout)
    logger.debug(f"[LOCK] Acquired {lock_name}")
    try:
        if lock_file is None:
            yield
        else:
            remaining = _remaining(deadline)
            # A spent timeout must not reach file_lock as 0, which waits forever
            file_timeout = remaining if remaining != 0 else 0.001
            with file_lock(lock_file, file_timeout, lock_name):
                yield
    finally:
        thread_lock.release()
        logger.debug(f"[LOCK] Released {lock_name}")
