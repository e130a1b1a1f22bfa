"""Charset detection and transcoding of parsed diff content"""

import codecs
import logging
from typing import Optional

from charset_normalizer import from_bytes

from diffview.domain.models.diff import Diff, DiffFile

logger = logging.getLogger(__name__)

CANONICAL_ENCODING = "utf-8"


def _to_bytes(content: str) -> bytes:
    # Undecodable bytes were kept as lone surrogates by the parser
    return content.encode("utf-8", "surrogateescape")


def is_canonical(label: str) -> bool:
    try:
        return codecs.lookup(label).name == CANONICAL_ENCODING
    except LookupError:
        return False


def detect_encoding(content: bytes, ansi_charset: Optional[str] = None) -> Optional[str]:
    """Guess the charset of content

    Valid UTF-8 is reported as such without running detection. Otherwise the
    configured ANSI charset wins over a non-UTF-8 guess.

    Args:
        content: Raw bytes
        ansi_charset: Charset to use for content that is not UTF-8

    Returns:
        Codec label, or None when nothing could be detected
    """
    try:
        content.decode(CANONICAL_ENCODING)
        return CANONICAL_ENCODING
    except UnicodeDecodeError:
        pass

    best = from_bytes(content).best()
    label = best.encoding if best is not None else None
    if ansi_charset and (label is None or not is_canonical(label)):
        logger.debug(f"Using default ANSI charset: {ansi_charset}")
        return ansi_charset

    logger.debug(f"Detected encoding: {label}")
    return label


def normalize_file_encoding(diff_file: DiffFile, ansi_charset: Optional[str] = None) -> None:
    """Transcode every line of a file to text when its content is not UTF-8

    Lines that cannot be decoded with the detected charset are left as they are.
    """
    try:
        buf = b"".join(_to_bytes(line.content) + b"\n" for line in diff_file.iter_lines())
    except UnicodeEncodeError:
        logger.debug(f"Content of {diff_file.name} is not byte-backed, skipping detection")
        return
    if not buf:
        return

    label = detect_encoding(buf, ansi_charset)
    if label is None or is_canonical(label):
        return

    try:
        codec = codecs.lookup(label)
    except LookupError:
        logger.warning(f"No decoder for charset {label} of {diff_file.name}")
        return

    logger.debug(f"Transcoding {diff_file.name} from {codec.name}")
    for line in diff_file.iter_lines():
        try:
            line.content = _to_bytes(line.content).decode(codec.name)
        except UnicodeError:
            continue


def normalize_encoding(diff: Diff, ansi_charset: Optional[str] = None) -> None:
    """Run charset normalization on every file of a parsed diff"""
    for diff_file in diff.files:
        normalize_file_encoding(diff_file, ansi_charset=ansi_charset)
