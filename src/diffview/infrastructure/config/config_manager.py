"""Configuration manager for loading and validating .diffview.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from diffview.domain.config import AppConfig, EncodingConfig, GitConfig, LimitsConfig, RetryConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".diffview.yml"

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "DIFFVIEW_MAX_FILES": ("limits", "max_files"),
    "DIFFVIEW_MAX_LINES": ("limits", "max_lines"),
    "DIFFVIEW_MAX_LINE_LENGTH": ("limits", "max_line_length"),
    "DIFFVIEW_GIT_BINARY": ("git", "binary"),
    "DIFFVIEW_GIT_TIMEOUT": ("git", "timeout"),
    "DIFFVIEW_ANSI_CHARSET": ("encoding", "ansi_charset"),
}


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


class ConfigManager:
    """Manages configuration from .diffview.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values
    2. .diffview.yml file (searched from current directory upwards)
    3. Environment variables (DIFFVIEW_*)
    4. CLI arguments (handled by CLI layer)
    """

    DEFAULT_CONFIG = {
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
            "ansi_charset": None,
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .diffview.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"  - {field}: {error['msg']}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .diffview.yml starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Raises:
            ValidationError: If configuration is invalid
        """
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
                if not isinstance(file_config, dict):
                    raise ConfigurationError(f"{self.config_path} must contain a mapping")
                config_dict = self._merge_config(config_dict, file_config)
                logger.info(f"Loaded configuration from {self.config_path}")
            except (OSError, yaml.YAMLError, ConfigurationError) as e:
                logger.warning(f"Failed to load config from {self.config_path}: {e}")
                logger.info("Using default configuration")

        config_dict = self._apply_env_overrides(config_dict)
        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply DIFFVIEW_* environment variable overrides

        Values are passed through as strings; pydantic coerces them.
        """
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                logger.debug(f"{env_name} overrides {section}.{key}")
                config.setdefault(section, {})[key] = value
        return config

    def get_limits_config(self) -> LimitsConfig:
        """Get diff size limits"""
        return self.config.limits

    def get_git_config(self) -> GitConfig:
        """Get git invocation configuration"""
        return self.config.git

    def get_retry_config(self) -> RetryConfig:
        """Get retry configuration"""
        return self.config.retry

    def get_encoding_config(self) -> EncodingConfig:
        """Get content transcoding configuration"""
        return self.config.encoding

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)

        Args:
            key: Configuration key (e.g., "limits.max_files" or "limits")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config.model_dump()
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
