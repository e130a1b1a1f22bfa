"""Diff size limits configuration model."""

from pydantic import BaseModel, Field


class LimitsConfig(BaseModel):
    """Configuration for diff size limits.

    Attributes:
        max_files: Maximum number of files parsed from one patch (stops parsing)
        max_lines: Maximum lines per file before it is flagged as incomplete
        max_line_length: Line length at which a file is flagged as incomplete
    """

    max_files: int = Field(100, gt=0)
    max_lines: int = Field(1000, gt=0)
    max_line_length: int = Field(500, gt=0)
