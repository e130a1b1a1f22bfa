"""Configuration models with Pydantic validation."""

from diffview.domain.config.app import AppConfig
from diffview.domain.config.encoding import EncodingConfig
from diffview.domain.config.git import GitConfig
from diffview.domain.config.limits import LimitsConfig
from diffview.domain.config.retry import RetryConfig

__all__ = [
    "AppConfig",
    "EncodingConfig",
    "GitConfig",
    "LimitsConfig",
    "RetryConfig",
]
