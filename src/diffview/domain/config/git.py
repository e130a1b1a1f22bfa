"""Git configuration model."""

from pydantic import BaseModel, Field


class GitConfig(BaseModel):
    """Configuration for invoking git.

    Attributes:
        binary: Git executable name or path
        timeout: Seconds after which a running git process is killed
        detect_renames: Whether to pass -M to git diff
    """

    binary: str = "git"
    timeout: float = Field(60.0, gt=0.0)
    detect_renames: bool = True
