"""Tests for configuration validation with Pydantic."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from diffview.domain.config import (
    AppConfig,
    EncodingConfig,
    GitConfig,
    LimitsConfig,
    RetryConfig,
)
from diffview.infrastructure.config.config_manager import ConfigManager, ConfigurationError


class TestLimitsConfigValidation:
    """Tests for LimitsConfig validation."""

    def test_defaults(self):
        """Test default limits"""
        config = LimitsConfig()
        assert config.max_files == 100
        assert config.max_lines == 1000
        assert config.max_line_length == 500

    def test_max_files_zero(self):
        """Test max_files must be positive"""
        with pytest.raises(ValidationError, match="max_files"):
            LimitsConfig(max_files=0)

    def test_max_lines_negative(self):
        """Test max_lines must be positive"""
        with pytest.raises(ValidationError, match="max_lines"):
            LimitsConfig(max_lines=-1)

    def test_max_line_length_zero(self):
        """Test max_line_length must be positive"""
        with pytest.raises(ValidationError, match="max_line_length"):
            LimitsConfig(max_line_length=0)


class TestGitConfigValidation:
    """Tests for GitConfig validation."""

    def test_valid_git_config(self):
        """Test valid git configuration"""
        config = GitConfig(binary="/usr/bin/git", timeout=5, detect_renames=False)
        assert config.binary == "/usr/bin/git"
        assert config.timeout == 5.0
        assert config.detect_renames is False

    def test_timeout_zero(self):
        """Test timeout must be positive"""
        with pytest.raises(ValidationError, match="timeout"):
            GitConfig(timeout=0)


class TestRetryConfigValidation:
    """Tests for RetryConfig validation."""

    def test_valid_retry_config(self):
        """Test valid retry configuration"""
        config = RetryConfig(max_attempts=3, initial_delay=1.0, backoff_multiplier=2.0, jitter=0.1)
        assert config.max_attempts == 3
        assert config.jitter == 0.1

    def test_max_attempts_zero(self):
        """Test max_attempts must be positive"""
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=0)

    def test_max_attempts_too_high(self):
        """Test max_attempts above limit"""
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=11)

    def test_backoff_multiplier_too_low(self):
        """Test backoff_multiplier below 1.0"""
        with pytest.raises(ValidationError, match="backoff_multiplier"):
            RetryConfig(backoff_multiplier=0.5)


class TestEncodingConfigValidation:
    """Tests for EncodingConfig validation."""

    def test_known_charset(self):
        """Test a known charset is accepted"""
        assert EncodingConfig(ansi_charset="cp1252").ansi_charset == "cp1252"

    def test_empty_charset_means_detect(self):
        """Test an empty charset is normalized to None"""
        assert EncodingConfig(ansi_charset="").ansi_charset is None

    def test_unknown_charset(self):
        """Test an unknown charset is rejected"""
        with pytest.raises(ValidationError, match="unknown charset"):
            EncodingConfig(ansi_charset="no-such-charset")


class TestAppConfigValidation:
    """Tests for AppConfig validation."""

    def test_valid_app_config(self):
        """Test valid application configuration"""
        config = AppConfig()
        assert config.limits.max_files == 100
        assert config.git.binary == "git"

    def test_unknown_field_rejected(self):
        """Test unknown fields are rejected"""
        with pytest.raises(ValidationError, match="extra"):
            AppConfig(unknown_field="value")

    def test_nested_validation(self):
        """Test nested validation works"""
        with pytest.raises(ValidationError, match="max_files"):
            AppConfig(limits={"max_files": 0})


class TestConfigManagerValidation:
    """Tests for ConfigManager validation."""

    def _write_config(self, config_data) -> str:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yml", delete=False) as f:
            yaml.dump(config_data, f)
            return f.name

    def test_load_valid_config_from_file(self):
        """Test loading valid configuration from file"""
        config_path = self._write_config({"limits": {"max_files": 10}})
        try:
            manager = ConfigManager(config_path=config_path)
            assert manager.config.limits.max_files == 10
            # Unset keys keep their defaults
            assert manager.config.limits.max_lines == 1000
        finally:
            Path(config_path).unlink()

    def test_load_invalid_config_raises_error(self):
        """Test loading invalid configuration raises error"""
        config_path = self._write_config({"limits": {"max_lines": 0}})
        try:
            with pytest.raises(ConfigurationError, match="limits.max_lines"):
                ConfigManager(config_path=config_path)
        finally:
            Path(config_path).unlink()

    def test_unreadable_yaml_falls_back_to_defaults(self, tmp_path):
        """Test broken YAML is reported and defaults are used"""
        config_path = tmp_path / ".diffview.yml"
        config_path.write_text("limits: [unclosed", encoding="utf-8")

        manager = ConfigManager(config_path=config_path)
        assert manager.config.limits.max_files == 100

    def test_config_file_found_in_parent_directory(self, tmp_path, monkeypatch):
        """Test .diffview.yml is searched upwards from the working directory"""
        (tmp_path / ".diffview.yml").write_text("git:\n  timeout: 7\n", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        manager = ConfigManager()
        assert manager.config.git.timeout == 7.0

    def test_default_config_is_valid(self, tmp_path, monkeypatch):
        """Test default configuration is valid"""
        monkeypatch.chdir(tmp_path)
        manager = ConfigManager()
        assert isinstance(manager.config, AppConfig)
        assert manager.config_path is None

    def test_get_typed_config_sections(self):
        """Test getter methods return typed models"""
        manager = ConfigManager()

        assert isinstance(manager.get_limits_config(), LimitsConfig)
        assert isinstance(manager.get_git_config(), GitConfig)
        assert isinstance(manager.get_retry_config(), RetryConfig)
        assert isinstance(manager.get_encoding_config(), EncodingConfig)

    def test_env_overrides_work(self, monkeypatch):
        """Test environment variable overrides"""
        monkeypatch.setenv("DIFFVIEW_MAX_FILES", "3")
        monkeypatch.setenv("DIFFVIEW_GIT_BINARY", "/opt/git/bin/git")

        manager = ConfigManager()
        assert manager.config.limits.max_files == 3
        assert manager.config.git.binary == "/opt/git/bin/git"

    def test_invalid_env_override_raises_error(self, monkeypatch):
        """Test invalid environment values are validated too"""
        monkeypatch.setenv("DIFFVIEW_MAX_LINE_LENGTH", "not-a-number")

        with pytest.raises(ConfigurationError, match="max_line_length"):
            ConfigManager()

    def test_get_dot_notation(self):
        """Test get() with dotted keys"""
        manager = ConfigManager()
        assert manager.get("limits.max_files") == manager.config.limits.max_files
        assert manager.get("limits.unknown", "fallback") == "fallback"
