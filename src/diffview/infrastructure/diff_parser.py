"""Unified diff parser for git diff/show output

Turns the text produced by ``git diff`` into a Diff model. Parsing is a single
pass over the stream; a per-call PatchParser carries the cursor state.
"""

import logging
import re
from enum import Enum
from typing import IO, List, NamedTuple, Optional, Tuple, Union

from diffview.domain.models.diff import (
    Diff,
    DiffFile,
    DiffFileType,
    DiffLine,
    DiffLineType,
    DiffSection,
)
from diffview.infrastructure.encoding import normalize_encoding

logger = logging.getLogger(__name__)

DIFF_HEAD = "diff --git "

# @@ -l[,n] [+r[,m]] [@@[ section name]]
HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,\d+)?(?:\s+\+(\d+)(?:,\d+)?)?(?:\s+@@(.*))?$")

# Header lines that end the file header scan and belong to the main loop
_HEADER_SCAN_STOP = ("@", DIFF_HEAD, "Binary", "+++ ", "--- ")

# C-style escapes used by git when quoting paths
_GIT_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}

_DRAIN_CHUNK_SIZE = 64 * 1024


class DiffParseError(Exception):
    """Raised when a patch cannot be parsed"""

    pass


class LineKind(Enum):
    """Classification of one physical patch line"""

    IGNORED = "ignored"  # Empty line or ---/+++ file header noise
    CONTEXT = "context"
    HUNK_HEADER = "hunk_header"
    ADDED = "added"
    REMOVED = "removed"
    BINARY = "binary"
    FILE_HEADER = "file_header"
    OTHER = "other"  # Extended headers, "\ No newline at end of file", preamble


class ClassifiedLine(NamedTuple):
    kind: LineKind
    content: str


def classify_line(line: str) -> ClassifiedLine:
    """Classify a line (trailing newline already stripped) by its first characters"""
    if not line or line.startswith("+++ ") or line.startswith("--- "):
        kind = LineKind.IGNORED
    elif line[0] == " ":
        kind = LineKind.CONTEXT
    elif line[0] == "@":
        kind = LineKind.HUNK_HEADER
    elif line[0] == "+":
        kind = LineKind.ADDED
    elif line[0] == "-":
        kind = LineKind.REMOVED
    elif line.startswith("Binary"):
        kind = LineKind.BINARY
    elif line.startswith(DIFF_HEAD):
        kind = LineKind.FILE_HEADER
    else:
        kind = LineKind.OTHER
    return ClassifiedLine(kind, line)


def unescape_git_path(quoted: str) -> str:
    """Decode the body of a path quoted by git (without the surrounding quotes)

    Git escapes control characters C-style and non-ASCII bytes as three octal
    digits, so the decoded bytes are reassembled before decoding as UTF-8.
    """
    out = bytearray()
    i = 0
    while i < len(quoted):
        ch = quoted[i]
        if ch != "\\" or i + 1 >= len(quoted):
            out += ch.encode("utf-8", "surrogateescape")
            i += 1
            continue

        nxt = quoted[i + 1]
        octal = quoted[i + 1 : i + 4]
        if len(octal) == 3 and all(c in "01234567" for c in octal):
            out.append(int(octal, 8) & 0xFF)
            i += 4
        elif nxt in _GIT_ESCAPES:
            out.append(_GIT_ESCAPES[nxt])
            i += 2
        else:
            out += nxt.encode("utf-8", "surrogateescape")
            i += 2
    return out.decode("utf-8", "surrogateescape")


def _closing_quote(text: str) -> int:
    """Index of the quote closing the string opened at text[0]"""
    i = 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == '"':
            return i
        i += 1
    return len(text) - 1


def _unquote_operand(operand: str) -> str:
    if len(operand) >= 2 and operand[0] == '"' and operand[-1] == '"':
        operand = unescape_git_path(operand[1:-1])
    if operand.startswith(("a/", "b/")):
        operand = operand[2:]
    return operand


def parse_diff_header(line: str) -> Tuple[str, str]:
    """Extract the two path operands of a ``diff --git`` line

    Handles ``a/x b/x`` as well as quoted ``"a/x y" "b/x y"`` forms (and a mix
    of both, which git emits when only one side needs quoting).

    Returns:
        Tuple of (old path, new path) without the a/ and b/ prefixes
    """
    rest = line[len(DIFF_HEAD):]

    if rest.startswith('"'):
        end = _closing_quote(rest)
        first, second = rest[: end + 1], rest[end + 1 :].lstrip(" ")
    else:
        middle = rest.find(' "b/')
        if middle < 0:
            middle = rest.find(" b/")
        if middle < 0:
            logger.warning(f"Cannot split paths of file header: {line}")
            first = second = rest
        else:
            first, second = rest[:middle], rest[middle + 1 :]

    return _unquote_operand(first), _unquote_operand(second)


def parse_hunk_header(line: str) -> Tuple[int, int, str]:
    """Parse ``@@ -l,n +r,m @@ name`` into (left start, right start, name)

    A missing right range is tolerated: the right start defaults to the left one.

    Raises:
        DiffParseError: If the left range is missing
    """
    match = HUNK_HEADER_RE.match(line)
    if match is None:
        raise DiffParseError(f"Malformed hunk header: {line!r}")

    left = int(match.group(1))
    if match.group(2) is None:
        logger.warning(f"Parse line number failed, using left start for right side: {line}")
        right = left
    else:
        right = int(match.group(2))
    return left, right, (match.group(3) or "").strip()


class _LineReader:
    """Reads lines one at a time from a text or binary stream, with push back"""

    def __init__(self, stream: IO):
        self._stream = stream
        self._pending: List[str] = []

    def read_line(self) -> Optional[str]:
        if self._pending:
            return self._pending.pop()

        try:
            raw = self._stream.readline()
        except (OSError, ValueError) as e:
            raise DiffParseError(f"Failed to read diff: {e}") from e
        if not raw:
            return None

        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", "surrogateescape")
        if raw.endswith("\n"):
            raw = raw[:-1]
        return raw

    def push_back(self, line: str) -> None:
        self._pending.append(line)

    def drain(self) -> None:
        """Consume and discard everything left in the stream"""
        self._pending.clear()
        try:
            while self._stream.read(_DRAIN_CHUNK_SIZE):
                pass
        except (OSError, ValueError) as e:
            raise DiffParseError(f"Failed to read diff: {e}") from e


class PatchParser:
    """Single-use state machine building a Diff from a patch stream"""

    def __init__(self, max_lines: int, max_line_length: int, max_files: int):
        self.max_lines = max_lines
        self.max_line_length = max_line_length
        self.max_files = max_files

        self.diff = Diff()
        self.current_file: Optional[DiffFile] = None
        self.current_section: Optional[DiffSection] = None
        self.left_line = 0
        self.right_line = 0
        self.file_lines_count = 0

    def parse(self, stream: IO) -> Diff:
        reader = _LineReader(stream)

        while True:
            line = reader.read_line()
            if line is None:
                break

            self._count_line(line)

            kind = classify_line(line).kind
            if kind is LineKind.CONTEXT:
                self._add_context(line)
            elif kind is LineKind.HUNK_HEADER:
                self._start_section(line)
            elif kind is LineKind.ADDED:
                self._add_addition(line)
            elif kind is LineKind.REMOVED:
                self._add_deletion(line)
            elif kind is LineKind.BINARY:
                if self.current_file is not None:
                    self.current_file.is_bin = True
            elif kind is LineKind.FILE_HEADER:
                if not self._start_file(line, reader):
                    reader.drain()
                    break

        logger.debug(
            f"Parsed {self.diff.num_files} files from {self.diff.total_lines_seen} lines "
            f"(+{self.diff.total_addition} -{self.diff.total_deletion})"
        )
        return self.diff

    def _count_line(self, line: str) -> None:
        self.diff.total_lines_seen += 1
        self.file_lines_count += 1
        self._check_size(line)

    def _check_size(self, line: str) -> None:
        diff_file = self.current_file
        if diff_file is None or diff_file.is_incomplete:
            return
        if self.file_lines_count >= self.max_lines or len(line) >= self.max_line_length:
            diff_file.is_incomplete = True
            logger.info(f"Diff of {diff_file.name} exceeds size limits, marked incomplete")

    def _start_file(self, line: str, reader: _LineReader) -> bool:
        """Open a new file record; returns False once the file limit is reached"""
        if len(self.diff.files) >= self.max_files:
            self.diff.is_incomplete = True
            logger.info(f"Diff exceeds {self.max_files} files, discarding the rest")
            return False

        name, new_name = parse_diff_header(line)
        diff_file = DiffFile(name=name, index=len(self.diff.files) + 1)
        self.diff.files.append(diff_file)
        self.current_file = diff_file
        self.current_section = None
        self.file_lines_count = 0

        self._scan_file_type(diff_file, new_name, reader)
        return True

    def _scan_file_type(self, diff_file: DiffFile, new_name: str, reader: _LineReader) -> None:
        """Read extended header lines until the change type is known"""
        while True:
            line = reader.read_line()
            if line is None:
                return

            if line.startswith(_HEADER_SCAN_STOP):
                reader.push_back(line)
                return
            self._count_line(line)

            if line.startswith("new file"):
                diff_file.type = DiffFileType.ADD
            elif line.startswith("deleted"):
                diff_file.type = DiffFileType.DEL
            elif line.startswith("index"):
                diff_file.type = DiffFileType.CHANGE
            elif line.startswith("similarity index 100%"):
                diff_file.type = DiffFileType.RENAME
                diff_file.old_name = diff_file.name
                diff_file.name = new_name
            else:
                continue
            return

    def _start_section(self, line: str) -> None:
        if self.current_file is None:
            logger.debug(f"Ignoring hunk header outside of a file: {line}")
            return

        left, right, name = parse_hunk_header(line)
        section = DiffSection(name=name)
        section.lines.append(DiffLine(type=DiffLineType.SECTION, content=line))
        self.current_file.sections.append(section)
        self.current_section = section
        self.left_line = left
        self.right_line = right

    def _add_context(self, line: str) -> None:
        if self.current_section is None:
            return
        self.current_section.lines.append(
            DiffLine(
                type=DiffLineType.PLAIN,
                content=line,
                left_idx=self.left_line,
                right_idx=self.right_line,
            )
        )
        self.left_line += 1
        self.right_line += 1

    def _add_addition(self, line: str) -> None:
        if self.current_section is None:
            return
        self.current_file.addition += 1
        self.diff.total_addition += 1
        self.current_section.lines.append(
            DiffLine(type=DiffLineType.ADD, content=line, right_idx=self.right_line)
        )
        self.right_line += 1

    def _add_deletion(self, line: str) -> None:
        if self.current_section is None:
            return
        self.current_file.deletion += 1
        self.diff.total_deletion += 1
        self.current_section.lines.append(
            DiffLine(type=DiffLineType.DEL, content=line, left_idx=self.left_line)
        )
        # A malformed hunk may leave no valid line number to advance from
        if self.left_line > 0:
            self.left_line += 1


def parse_patch(
    max_lines: int,
    max_line_length: int,
    max_files: int,
    stream: Union[IO[str], IO[bytes]],
    ansi_charset: Optional[str] = None,
) -> Diff:
    """Parse a unified diff stream into a Diff

    Args:
        max_lines: Lines per file at which the file is flagged incomplete
        max_line_length: Line length at which the file is flagged incomplete
        max_files: Number of files after which parsing stops and the diff is flagged incomplete
        stream: Text or binary stream with git diff output
        ansi_charset: Charset to assume for content that is not valid UTF-8

    Returns:
        Diff model

    Raises:
        DiffParseError: On a malformed hunk header or a read failure
    """
    diff = PatchParser(max_lines, max_line_length, max_files).parse(stream)
    normalize_encoding(diff, ansi_charset=ansi_charset)
    return diff
