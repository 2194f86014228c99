"""Repository contexts and their manager."""

from ledger.repos.context import RepositoryContext
from ledger.repos.locking import LockTimeout
from ledger.repos.manager import (
    InvalidRepository,
    NoRepositorySelected,
    RepositoryManager,
    resolve_repository,
)

__all__ = [
    "RepositoryContext",
    "RepositoryManager",
    "NoRepositorySelected",
    "InvalidRepository",
    "LockTimeout",
    "resolve_repository",
]
