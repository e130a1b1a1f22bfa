"""Diff model - structured, line-addressable representation of a unified diff"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional


class DiffLineType(IntEnum):
    """Kind of a rendered diff row"""

    PLAIN = 1  # Context line
    ADD = 2
    DEL = 3
    SECTION = 4  # Hunk header


class DiffFileType(IntEnum):
    """Kind of change applied to a file"""

    ADD = 1
    CHANGE = 2
    DEL = 3
    RENAME = 4


@dataclass
class DiffLine:
    """One rendered row of a diff

    Line indices are 1-based; 0 means the line does not exist in that revision.
    """

    type: DiffLineType
    content: str  # Raw text including the leading marker character
    left_idx: int = 0  # Line number in the old revision
    right_idx: int = 0  # Line number in the new revision


@dataclass
class DiffSection:
    """A hunk: ordered lines starting with the hunk header row"""

    name: str = ""  # Trailing context shown in the hunk header
    lines: List[DiffLine] = field(default_factory=list)

    def get_line(self, line_type: DiffLineType, idx: int) -> Optional[DiffLine]:
        """Find the counterpart line of the given type at a paired position

        The offset between left and right numbering is taken from the most recent
        context line seen while scanning, so an added line at right index ``r``
        pairs with a removed line at left index ``r - offset`` and vice versa.

        Args:
            line_type: Type of the line to look for (ADD or DEL)
            idx: Line number of the line being paired, in its own revision

        Returns:
            Matching DiffLine or None
        """
        difference = 0

        for line in self.lines:
            if line.type == DiffLineType.PLAIN:
                difference = line.right_idx - line.left_idx
                continue

            if line_type == DiffLineType.DEL:
                if line.type == DiffLineType.DEL and line.left_idx == idx - difference:
                    return line
            elif line_type == DiffLineType.ADD:
                if line.type == DiffLineType.ADD and line.right_idx == idx + difference:
                    return line
        return None

    def get_computed_inline_diff_for(self, line: DiffLine) -> str:
        """Render the line as HTML with the changed characters highlighted"""
        # Imported lazily: the renderer depends on the model
        from diffview.infrastructure.inline_diff import compute_inline_diff

        return compute_inline_diff(self, line)


@dataclass
class DiffFile:
    """Changes of a single file"""

    name: str
    old_name: str = ""  # Only meaningful for renamed files
    index: int = 0  # 1-based position in the patch
    type: DiffFileType = DiffFileType.CHANGE
    addition: int = 0
    deletion: int = 0
    is_bin: bool = False
    is_incomplete: bool = False  # Size limits were hit while parsing this file
    sections: List[DiffSection] = field(default_factory=list)

    @property
    def is_created(self) -> bool:
        return self.type == DiffFileType.ADD

    @property
    def is_deleted(self) -> bool:
        return self.type == DiffFileType.DEL

    @property
    def is_renamed(self) -> bool:
        return self.type == DiffFileType.RENAME

    @property
    def highlight_class(self) -> str:
        """Syntax highlighting class for the file name ("" if unknown)"""
        from diffview.infrastructure.highlight import file_name_to_highlight_class

        return file_name_to_highlight_class(self.name)

    def iter_lines(self):
        """Iterate over all lines of all sections in order"""
        for section in self.sections:
            yield from section.lines


@dataclass
class Diff:
    """Result of parsing a whole patch"""

    total_addition: int = 0
    total_deletion: int = 0
    files: List[DiffFile] = field(default_factory=list)
    is_incomplete: bool = False  # A global limit (file count) was hit
    total_lines_seen: int = 0

    @property
    def num_files(self) -> int:
        return len(self.files)
