"""
Tests for genstudio.core.config
=================================

These tests verify that the configuration system works correctly:
    - Default values match the service's documented behaviour
    - Environment variables override defaults (GENSTUDIO_ prefix)
    - YAML files are parsed correctly
    - Validation catches invalid values
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from genstudio.core.config import (
    ApiConfig,
    GatewayConfig,
    GenStudioConfig,
    RetryConfig,
    StorageConfig,
    get_default_config,
    load_config,
)
from genstudio.core.enums import StorageBackend
from genstudio.core.exceptions import ConfigurationError


# =============================================================================
# Test: Default Configuration
# =============================================================================
class TestDefaultConfig:
    """Tests for default configuration values."""

    def test_default_config_creates_successfully(self) -> None:
        config = GenStudioConfig()
        assert config.environment == "dev"
        assert config.log_level == "INFO"

    def test_gateway_defaults(self) -> None:
        """20% overload rate and a 1-2s simulated processing delay."""
        gateway = GatewayConfig()
        assert gateway.overload_probability == 0.2
        assert gateway.processing_delay_min == 1.0
        assert gateway.processing_delay_max == 2.0
        assert gateway.default_history_limit == 5
        assert gateway.image_url_prefix == "/uploads/"

    def test_retry_defaults(self) -> None:
        retry = RetryConfig()
        assert retry.max_retries == 3
        assert retry.base_delay == 1.0

    def test_storage_defaults_to_memory(self) -> None:
        assert StorageConfig().backend == StorageBackend.MEMORY

    def test_api_defaults(self) -> None:
        api = ApiConfig()
        assert api.port == 3001
        assert api.api_tokens == {}

    def test_get_default_config(self) -> None:
        assert isinstance(get_default_config(), GenStudioConfig)


# =============================================================================
# Test: Validation
# =============================================================================
class TestConfigValidation:
    """Invalid values are rejected at construction time."""

    def test_probability_above_one_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            GatewayConfig(overload_probability=1.5)

    def test_inverted_delay_range_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            GatewayConfig(processing_delay_min=3.0, processing_delay_max=1.0)

    def test_zero_max_retries_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            RetryConfig(max_retries=0)


# =============================================================================
# Test: Environment Variables
# =============================================================================
class TestEnvironmentOverrides:
    """GENSTUDIO_* variables override defaults, with __ for nesting."""

    def test_top_level_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GENSTUDIO_LOG_LEVEL", "DEBUG")
        assert GenStudioConfig().log_level == "DEBUG"

    def test_nested_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GENSTUDIO_RETRY__MAX_RETRIES", "5")
        monkeypatch.setenv("GENSTUDIO_GATEWAY__OVERLOAD_PROBABILITY", "0.5")
        config = GenStudioConfig()
        assert config.retry.max_retries == 5
        assert config.gateway.overload_probability == 0.5


# =============================================================================
# Test: YAML Loading
# =============================================================================
class TestLoadConfig:
    """Tests for load_config()."""

    def test_loads_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "genstudio.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "environment": "staging",
                    "retry": {"max_retries": 4, "base_delay": 0.5},
                    "storage": {"backend": "sqlite", "database_path": "data/gen.sqlite"},
                }
            )
        )
        config = load_config(str(path))
        assert config.environment == "staging"
        assert config.retry.max_retries == 4
        assert config.retry.base_delay == 0.5
        assert config.storage.backend == StorageBackend.SQLITE

    def test_missing_explicit_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)).retry.max_retries == 3

    def test_invalid_yaml_raises_configuration_error(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("retry: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(path))
        assert exc_info.value.error_code == "CONFIG_ERROR"

    def test_non_mapping_top_level_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_no_path_and_no_default_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config().environment == "dev"
