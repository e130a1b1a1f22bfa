"""File name to syntax highlighting class mapping"""

import posixpath
from functools import lru_cache

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound


@lru_cache(maxsize=1024)
def file_name_to_highlight_class(name: str) -> str:
    """Return the highlighter alias for a file name, or "" if unknown"""
    base = posixpath.basename(name)
    if not base:
        return ""
    try:
        lexer = get_lexer_for_filename(base)
    except ClassNotFound:
        return ""
    return lexer.aliases[0] if lexer.aliases else ""
