"""
Parse git unified-diff output into files, hunks and lines.

The parser walks the text line by line. The text is first cut into file
sections at each `diff --git` header, then each section is read as a small
state machine (header lines, then hunks, then lines inside a hunk). A section
that turns out malformed or truncated keeps its path and status but loses its
hunks; the sections around it are unaffected.

Supports:
- several files in one blob, renames, new/deleted files
- binary markers (`Binary files ... differ`, `GIT binary patch`)
- hunk headers with omitted counts (`@@ -5 +5 @@` means one line each side)
- a leading `--stat` block, which is skipped (see parse_stat_totals)
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

FILE_HEADER = "diff --git "
HUNK_HEADER = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$')
STAT_SUMMARY = re.compile(
    r'(\d+) files? changed'
    r'(?:, (\d+) insertions?\(\+\))?'
    r'(?:, (\d+) deletions?\(-\))?'
)
DEV_NULL = "/dev/null"


class FileStatus(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineKind(Enum):
    CONTEXT = "context"
    ADD = "add"
    DELETE = "delete"


class DiffParseError(Exception):
    """A file section could not be parsed."""

    def __init__(self, path: str | None, message: str, line_number: int | None = None):
        self.path = path
        self.line_number = line_number
        location = f" (line {line_number})" if line_number else ""
        super().__init__(f"{path or '<unknown>'}: {message}{location}")


@dataclass
class DiffLine:
    """A single line inside a hunk."""
    kind: LineKind
    content: str
    old_line_number: int | None = None  # context and delete lines
    new_line_number: int | None = None  # context and add lines

    def to_dict(self) -> dict:
        data = {"kind": self.kind.value, "content": self.content}
        if self.old_line_number is not None:
            data["old_line_number"] = self.old_line_number
        if self.new_line_number is not None:
            data["new_line_number"] = self.new_line_number
        return data


@dataclass
class DiffHunk:
    """A contiguous block of changes with its line-number anchors."""
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str = ""  # text after the closing @@, usually a function name
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def additions(self) -> int:
        return sum(1 for line in self.lines if line.kind is LineKind.ADD)

    @property
    def deletions(self) -> int:
        return sum(1 for line in self.lines if line.kind is LineKind.DELETE)

    def to_dict(self) -> dict:
        return {
            "old_start": self.old_start,
            "old_lines": self.old_lines,
            "new_start": self.new_start,
            "new_lines": self.new_lines,
            "header": self.header,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass
class FileDiff:
    """All changes to one file."""
    path: str
    status: FileStatus
    old_path: str | None = None  # only set for renames
    is_binary: bool = False
    hunks: list[DiffHunk] = field(default_factory=list)

    @property
    def additions(self) -> int:
        return sum(hunk.additions for hunk in self.hunks)

    @property
    def deletions(self) -> int:
        return sum(hunk.deletions for hunk in self.hunks)

    def to_dict(self) -> dict:
        data = {
            "path": self.path,
            "status": self.status.value,
            "additions": self.additions,
            "deletions": self.deletions,
            "is_binary": self.is_binary,
            "hunks": [hunk.to_dict() for hunk in self.hunks],
        }
        if self.old_path is not None:
            data["old_path"] = self.old_path
        return data


def parse_diff(text: str) -> list[FileDiff]:
    """
    Parse unified diff text into FileDiff objects, in input order.

    Never raises for bad input: a broken file section degrades to a FileDiff
    with no hunks, and a section whose paths cannot be read is dropped.
    """
    files = []
    for start, lines in _split_sections(text):
        section = _FileSection(lines, start)
        try:
            section.parse()
        except DiffParseError as e:
            logger.warning(f"[DIFF] Degrading to empty hunks: {e}")
            section.hunks = []
        file_diff = section.to_file_diff()
        if file_diff is None:
            logger.warning(f"[DIFF] Skipping section at line {start}: unreadable file header")
            continue
        files.append(file_diff)
    return files


def parse_stat_totals(text: str) -> tuple[int, int, int] | None:
    """
    Read the `N files changed, X insertions(+), Y deletions(-)` summary.

    Returns (files_changed, insertions, deletions) from the last summary
    line found, or None if there is none. Advisory only: per-file counts
    always come from parse_diff.
    """
    totals = None
    for line in text.split("\n"):
        match = STAT_SUMMARY.search(line)
        if match:
            totals = (
                int(match.group(1)),
                int(match.group(2) or 0),
                int(match.group(3) or 0),
            )
    return totals


def diff_totals(files: list[FileDiff]) -> tuple[int, int]:
    """Sum additions and deletions over parsed files."""
    return (
        sum(f.additions for f in files),
        sum(f.deletions for f in files),
    )


def _split_sections(text: str) -> list[tuple[int, list[str]]]:
    """Cut text into (first line number, lines) per `diff --git` section.

    Anything before the first header (e.g. a --stat block) is dropped.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    sections: list[tuple[int, list[str]]] = []
    for lineno, line in enumerate(lines, 1):
        if line.startswith(FILE_HEADER):
            sections.append((lineno, [line]))
        elif sections:
            sections[-1][1].append(line)
    return sections


def _unquote(path: str) -> str:
    """Undo git's C-style quoting of unusual path names."""
    if len(path) >= 2 and path[0] == '"' and path[-1] == '"':
        body = path[1:-1]
        return body.encode("utf-8").decode("unicode_escape").encode("latin-1").decode("utf-8", "replace")
    return path


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def _split_header_paths(rest: str) -> tuple[str, str] | None:
    """Split `a/<old> b/<new>` from a `diff --git` header.

    Paths may contain spaces, so the symmetric split (old == new) is tried
    first; renames fall back to the first ` b/`. Rename and ---/+++ lines
    later in the section override whatever this guesses.
    """
    if rest.startswith('"'):
        tokens = re.findall(r'"(?:[^"\\]|\\.)*"|\S+', rest)
        if len(tokens) != 2:
            return None
        return (
            _strip_prefix(_unquote(tokens[0]), "a/"),
            _strip_prefix(_unquote(tokens[1]), "b/"),
        )

    # "a/X b/X" has length 2k + 5
    if (len(rest) - 5) % 2 == 0 and len(rest) > 5:
        k = (len(rest) - 5) // 2
        old, sep, new = rest[2:2 + k], rest[2 + k:5 + k], rest[5 + k:]
        if rest.startswith("a/") and sep == " b/" and old == new:
            return old, new

    match = re.match(r'^a/(.+?) b/(.+)$', rest)
    if match:
        return _unquote(match.group(1)), _unquote(match.group(2))
    return None


class _FileSection:
    """State machine for one `diff --git` section."""

    def __init__(self, lines: list[str], first_line_number: int):
        self.lines = lines
        self.first_line_number = first_line_number
        self.old_path: str | None = None
        self.new_path: str | None = None
        self.added = False
        self.deleted = False
        self.renamed = False
        self.is_binary = False
        self.hunks: list[DiffHunk] = []

        # Hunk-reading state
        self._hunk: DiffHunk | None = None
        self._old_remaining = 0
        self._new_remaining = 0
        self._old_number = 0
        self._new_number = 0

        paths = _split_header_paths(lines[0][len(FILE_HEADER):])
        if paths:
            self.old_path, self.new_path = paths

    @property
    def _in_hunk(self) -> bool:
        return self._hunk is not None and (self._old_remaining > 0 or self._new_remaining > 0)

    def parse(self) -> None:
        for offset, line in enumerate(self.lines[1:], 1):
            lineno = self.first_line_number + offset

            if line.startswith("Binary files ") and line.endswith(" differ"):
                self.is_binary = True
                self._hunk = None
                continue

            if self._in_hunk:
                self._consume_hunk_line(line, lineno)
            elif line.startswith("@@"):
                self._start_hunk(line, lineno)
            elif not self.hunks:
                self._consume_header_line(line)
            # Anything after a completed hunk that is not a new hunk
            # (trailing stat text, "\ No newline" markers) is ignored.

        if self._in_hunk and not self.is_binary:
            raise DiffParseError(
                self.path,
                f"hunk truncated: {self._old_remaining} old and "
                f"{self._new_remaining} new lines missing",
            )

    @property
    def path(self) -> str | None:
        if self.deleted:
            return self.old_path or self.new_path
        return self.new_path or self.old_path

    def _consume_header_line(self, line: str) -> None:
        if line.startswith("new file mode"):
            self.added = True
        elif line.startswith("deleted file mode"):
            self.deleted = True
        elif line.startswith("rename from "):
            self.old_path = _unquote(line[len("rename from "):])
            self.renamed = True
        elif line.startswith("rename to "):
            self.new_path = _unquote(line[len("rename to "):])
            self.renamed = True
        elif line.startswith("GIT binary patch"):
            self.is_binary = True
        elif line.startswith("--- "):
            path = _unquote(line[4:].rstrip("\t"))
            if path != DEV_NULL:
                self.old_path = _strip_prefix(path, "a/")
        elif line.startswith("+++ "):
            path = _unquote(line[4:].rstrip("\t"))
            if path != DEV_NULL:
                self.new_path = _strip_prefix(path, "b/")

    def _start_hunk(self, line: str, lineno: int) -> None:
        match = HUNK_HEADER.match(line)
        if not match:
            raise DiffParseError(self.path, f"bad hunk header {line!r}", lineno)

        # An omitted count means a single-line hunk
        hunk = DiffHunk(
            old_start=int(match.group(1)),
            old_lines=int(match.group(2)) if match.group(2) is not None else 1,
            new_start=int(match.group(3)),
            new_lines=int(match.group(4)) if match.group(4) is not None else 1,
            header=match.group(5).strip(),
        )
        self.hunks.append(hunk)
        self._hunk = hunk
        self._old_remaining = hunk.old_lines
        self._new_remaining = hunk.new_lines
        self._old_number = hunk.old_start
        self._new_number = hunk.new_start

    def _consume_hunk_line(self, line: str, lineno: int) -> None:
        if line.startswith("\\"):
            # "\ No newline at end of file"
            return

        prefix, content = line[:1], line[1:]
        if prefix == "+" and self._new_remaining > 0:
            self._hunk.lines.append(DiffLine(LineKind.ADD, content, new_line_number=self._new_number))
            self._new_number += 1
            self._new_remaining -= 1
        elif prefix == "-" and self._old_remaining > 0:
            self._hunk.lines.append(DiffLine(LineKind.DELETE, content, old_line_number=self._old_number))
            self._old_number += 1
            self._old_remaining -= 1
        elif prefix in (" ", "") and self._old_remaining > 0 and self._new_remaining > 0:
            # Some tools strip the space from blank context lines
            self._hunk.lines.append(DiffLine(
                LineKind.CONTEXT, content,
                old_line_number=self._old_number,
                new_line_number=self._new_number,
            ))
            self._old_number += 1
            self._new_number += 1
            self._old_remaining -= 1
            self._new_remaining -= 1
        else:
            raise DiffParseError(
                self.path,
                f"unexpected line in hunk @@ -{self._hunk.old_start} +{self._hunk.new_start} @@: {line[:40]!r}",
                lineno,
            )

    def to_file_diff(self) -> FileDiff | None:
        path = self.path
        if path is None:
            return None

        if self.added:
            status = FileStatus.ADDED
        elif self.deleted:
            status = FileStatus.DELETED
        elif self.renamed or (self.old_path and self.new_path and self.old_path != self.new_path):
            status = FileStatus.RENAMED
        else:
            status = FileStatus.MODIFIED

        return FileDiff(
            path=path,
            status=status,
            old_path=self.old_path if status is FileStatus.RENAMED else None,
            is_binary=self.is_binary,
            hunks=[] if self.is_binary else self.hunks,
        )
