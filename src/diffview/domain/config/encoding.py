"""Content encoding configuration model."""

import codecs
from typing import Optional

from pydantic import BaseModel, field_validator


class EncodingConfig(BaseModel):
    """Configuration for transcoding diff content.

    Attributes:
        ansi_charset: Charset assumed for content that is not UTF-8 (None = detect)
    """

    ansi_charset: Optional[str] = None

    @field_validator("ansi_charset")
    @classmethod
    def _known_charset(cls, value: Optional[str]) -> Optional[str]:
        if value:
            try:
                codecs.lookup(value)
            except LookupError:
                raise ValueError(f"unknown charset: {value}")
        return value or None
