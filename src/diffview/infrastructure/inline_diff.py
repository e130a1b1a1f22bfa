"""Inline (character-level) diff rendering for paired added/removed lines"""

import html
from typing import List, Tuple

from diff_match_patch import diff_match_patch

from diffview.domain.models.diff import DiffLine, DiffLineType, DiffSection

ADDED_CODE_PREFIX = '<span class="added-code">'
REMOVED_CODE_PREFIX = '<span class="removed-code">'
CODE_TAG_SUFFIX = "</span>"


def diffs_to_html(diffs: List[Tuple[int, str]], line_type: DiffLineType) -> str:
    """Render diff_match_patch output for one side of a line pair

    Inserted text is shown only on the added line, deleted text only on the
    removed line; unchanged text on both.
    """
    parts = []
    for op, text in diffs:
        if op == diff_match_patch.DIFF_INSERT and line_type == DiffLineType.ADD:
            parts.append(ADDED_CODE_PREFIX + html.escape(text) + CODE_TAG_SUFFIX)
        elif op == diff_match_patch.DIFF_DELETE and line_type == DiffLineType.DEL:
            parts.append(REMOVED_CODE_PREFIX + html.escape(text) + CODE_TAG_SUFFIX)
        elif op == diff_match_patch.DIFF_EQUAL:
            parts.append(html.escape(text))
    return "".join(parts)


def compute_inline_diff(section: DiffSection, line: DiffLine) -> str:
    """Compute the highlighted HTML of an added or removed line

    The counterpart line is found positionally (see DiffSection.get_line). Lines
    without a counterpart, and lines of any other type, are returned escaped
    without their leading marker character.
    """
    default = html.escape(line.content[1:])

    if line.type == DiffLineType.ADD:
        other = section.get_line(DiffLineType.DEL, line.right_idx)
        if other is None:
            return default
        old, new = other.content, line.content
    elif line.type == DiffLineType.DEL:
        other = section.get_line(DiffLineType.ADD, line.left_idx)
        if other is None:
            return default
        old, new = line.content, other.content
    else:
        return default

    dmp = diff_match_patch()
    diffs = dmp.diff_main(old[1:], new[1:], True)
    dmp.diff_cleanupSemantic(diffs)
    return diffs_to_html(diffs, line.type)
