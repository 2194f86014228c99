"""Shared constants for ledger."""

import re

# Characters git refuses in branch names, plus whitespace
BRANCH_UNSAFE = re.compile(r'[\s~^:?*\[\\]+|\.\.|@\{')
MAX_BRANCH_NAME_LEN = 64

# Name of the per-repository lock file inside the git dir
LOCK_FILENAME = "ledger.lock"
