"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from diffview.domain.config.encoding import EncodingConfig
from diffview.domain.config.git import GitConfig
from diffview.domain.config.limits import LimitsConfig
from diffview.domain.config.retry import RetryConfig


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model that aggregates all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        limits: Diff size limits
        git: Git invocation configuration
        retry: Retry logic configuration
        encoding: Content transcoding configuration
    """

    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "limits": {
                    "max_files": 100,
                    "max_lines": 1000,
                    "max_line_length": 500,
                },
                "git": {
                    "binary": "git",
                    "timeout": 60.0,
                    "detect_renames": True,
                },
                "retry": {
                    "max_attempts": 3,
                    "initial_delay": 0.5,
                    "backoff_multiplier": 2.0,
                    "jitter": 0.1,
                },
                "encoding": {
                    "ansi_charset": "cp1252",
                },
            }
        },
    )
