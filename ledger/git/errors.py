"""Classification of git error output.

Git reports most anticipated failures only as text on stderr. These helpers
turn that text into the facts the workflows branch on.
"""

import re

CONFLICT_MARKERS = (
    "conflict",
    "CONFLICT",
    "Merge conflict",
    "could not apply",
)

NO_TRACKING_MARKERS = (
    "no tracking",
    "doesn't track",
    "There is no tracking information",
    "couldn't find remote ref",
)

# error: patch failed: src/app.py:12
_PATCH_FAILED = re.compile(r"^error: patch failed: (.+):\d+$", re.MULTILINE)
# error: src/app.py: patch does not apply
# error: src/new.py: already exists in working directory
# error: src/gone.py: does not exist in index
_PATH_ERROR = re.compile(
    r"^error: (.+?): (?:patch does not apply|already exists in working directory|"
    r"does not exist in index|No such file or directory)$",
    re.MULTILINE,
)


def is_conflict(text: str) -> bool:
    """True if git output describes overlapping changes."""
    return any(marker in text for marker in CONFLICT_MARKERS)


def is_no_tracking(text: str) -> bool:
    """True if git output says the branch has no upstream to pull from."""
    return any(marker in text for marker in NO_TRACKING_MARKERS)


def apply_failure_paths(stderr: str) -> list[str]:
    """Extract the paths `git apply` refused, in order, without duplicates."""
    paths: list[str] = []
    for pattern in (_PATCH_FAILED, _PATH_ERROR):
        for match in pattern.finditer(stderr):
            path = match.group(1).strip()
            if path not in paths:
                paths.append(path)
    return paths


def first_line(text: str) -> str:
    """First non-empty line of text, for short user-facing messages."""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""
