"""Tests for configuration management."""

import json
import pytest

from pydantic import ValidationError
from config import ConfigurationManager, Config
from config.models import (
    ProviderConfig,
    ProviderKind,
    RetryConfig,
    SkipMatrixConfig,
)
from core.operations import Operation


@pytest.fixture
def base_config_data():
    """Base configuration data for tests."""
    return {
        "fixtures_path": "./fixtures",
        "providers": [
            {
                "name": "Alchemy",
                "kind": "jsonrpc",
                "endpoints": {
                    "Homestead": {"url": "https://eth-mainnet.example.com/v2/${TEST_ALCHEMY_KEY}"},
                    "sepolia": {"url": "https://eth-sepolia.example.com/v2/static"},
                }
            },
            {
                "name": "etherscan",
                "kind": "etherscan",
                "endpoints": {
                    "homestead": {
                        "url": "https://api.etherscan.io/api",
                        "api_key": "test_key"
                    }
                }
            }
        ],
        "retry": {
            "max_attempts": 3,
            "delay_seconds": 0.5
        }
    }


@pytest.fixture
def config_file(tmp_path, base_config_data):
    """Create a temporary config file with base configuration data."""
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(base_config_data))
    return str(config_path)


@pytest.fixture
def manager(config_file, tmp_path):
    """Configuration manager that does not pick up a real .env file."""
    return ConfigurationManager(
        config_path=config_file,
        env_file=str(tmp_path / "missing.env")
    )


def test_load_config_from_json(manager, monkeypatch):
    """Test loading configuration from JSON file."""
    monkeypatch.setenv("TEST_ALCHEMY_KEY", "secret")

    config = manager.load_config()

    assert isinstance(config, Config)
    assert len(config.providers) == 2
    assert config.providers[0].name == "alchemy"
    assert config.providers[0].kind == ProviderKind.JSONRPC
    assert set(config.providers[0].endpoints) == {"homestead", "sepolia"}
    assert str(config.providers[0].endpoints["homestead"].url).endswith("/v2/secret")
    assert config.providers[1].kind == ProviderKind.ETHERSCAN
    assert config.retry.max_attempts == 3
    assert config.retry.delay_seconds == 0.5


def test_defaults(manager, monkeypatch):
    """Test defaults for sections absent from the JSON file."""
    monkeypatch.setenv("TEST_ALCHEMY_KEY", "secret")

    config = manager.load_config()

    assert config.harness.throttle_seconds == 1.0
    assert config.harness.pending_block_timeout_seconds == 15.0
    assert config.harness.pending_block_network == "homestead"
    assert config.retry.request_timeout_seconds == 30
    assert config.logging.level == "INFO"
    assert config.skip_matrix.excluded_providers == ["cloudflare"]
    assert config.skip_matrix.unsupported[0].provider == "etherscan"
    assert config.skip_matrix.unsupported[0].operation == Operation.GET_BLOCK_BY_HASH


def test_unresolved_placeholder_drops_endpoint(manager, monkeypatch):
    """An endpoint whose credential is unset is a configuration gap, not an error."""
    monkeypatch.delenv("TEST_ALCHEMY_KEY", raising=False)

    config = manager.load_config()

    assert list(config.providers[0].endpoints) == ["sepolia"]


def test_api_key_env_override(manager, monkeypatch):
    """Test <PROVIDER>_API_KEY overrides a configured api_key."""
    monkeypatch.setenv("TEST_ALCHEMY_KEY", "secret")
    monkeypatch.setenv("ETHERSCAN_API_KEY", "from_env")

    config = manager.load_config()

    assert config.providers[1].endpoints["homestead"].api_key == "from_env"


def test_get_provider_by_name(manager, monkeypatch):
    """Test getting provider configuration by name."""
    monkeypatch.setenv("TEST_ALCHEMY_KEY", "secret")
    manager.load_config()

    etherscan = manager.get_provider_by_name("Etherscan")
    assert etherscan is not None
    assert etherscan.kind == ProviderKind.ETHERSCAN

    assert manager.get_provider_by_name("unknown") is None


def test_accessors_require_loaded_config():
    """Test accessors fail before load_config()."""
    manager = ConfigurationManager(config_path="./does-not-matter.json")

    with pytest.raises(RuntimeError):
        manager.get_provider_configs()
    with pytest.raises(RuntimeError):
        manager.get_provider_by_name("etherscan")


def test_missing_config_file(tmp_path):
    """Test a missing config file raises FileNotFoundError."""
    manager = ConfigurationManager(config_path=str(tmp_path / "nope.json"))

    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_env_file_is_loaded(tmp_path, base_config_data):
    """Test values from the .env file resolve placeholders."""
    base_config_data["providers"][0]["endpoints"]["Homestead"]["url"] = (
        "https://eth-mainnet.example.com/v2/${TEST_DOTENV_ONLY_KEY}"
    )
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(base_config_data))
    env_path = tmp_path / ".env"
    env_path.write_text("TEST_DOTENV_ONLY_KEY=dotenv\n")

    manager = ConfigurationManager(config_path=str(config_path), env_file=str(env_path))
    config = manager.load_config()

    assert str(config.providers[0].endpoints["homestead"].url).endswith("/v2/dotenv")


class TestEnvOverrides:
    """Test environment variable overrides."""

    def test_retry_overrides(self, manager, monkeypatch):
        """Test RETRY_* environment variables."""
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("RETRY_DELAY_SECONDS", "2.5")
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "10")

        config = manager.load_config()

        assert config.retry.max_attempts == 7
        assert config.retry.delay_seconds == 2.5
        assert config.retry.request_timeout_seconds == 10

    def test_harness_overrides(self, manager, monkeypatch):
        """Test harness environment variables."""
        monkeypatch.setenv("THROTTLE_SECONDS", "0")
        monkeypatch.setenv("CASE_TIMEOUT_SECONDS", "20")
        monkeypatch.setenv("PENDING_BLOCK_TIMEOUT_SECONDS", "30")
        monkeypatch.setenv("PENDING_BLOCK_NETWORK", "Sepolia")

        config = manager.load_config()

        assert config.harness.throttle_seconds == 0
        assert config.harness.case_timeout_seconds == 20
        assert config.harness.pending_block_timeout_seconds == 30
        assert config.harness.pending_block_network == "sepolia"

    def test_fixtures_and_logging_overrides(self, manager, monkeypatch):
        """Test FIXTURES_PATH and LOG_* environment variables."""
        monkeypatch.setenv("FIXTURES_PATH", "/data/fixtures")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "text")

        config = manager.load_config()

        assert config.fixtures_path == "/data/fixtures"
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "text"

    def test_invalid_numeric_override_raises_error(self, manager, monkeypatch):
        """Test that a non-numeric override raises ValueError."""
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "many")

        with pytest.raises(ValueError) as exc_info:
            manager.load_config()

        assert "Invalid RETRY_MAX_ATTEMPTS" in str(exc_info.value)

    def test_out_of_range_override_raises_validation_error(self, manager, monkeypatch):
        """Test that an out-of-range override fails validation."""
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "0")

        with pytest.raises(ValidationError):
            manager.load_config()


class TestModelValidation:
    """Test pydantic model validation rules."""

    def test_duplicate_provider_names_rejected(self):
        """Test duplicate provider names raise ValidationError."""
        with pytest.raises(ValidationError):
            Config(providers=[
                ProviderConfig(name="infura"),
                ProviderConfig(name="INFURA"),
            ])

    def test_empty_provider_name_rejected(self):
        """Test empty provider names raise ValidationError."""
        with pytest.raises(ValidationError):
            ProviderConfig(name="   ")

    def test_unknown_operation_rejected(self):
        """Test skip entries must name a known operation."""
        with pytest.raises(ValidationError):
            SkipMatrixConfig(unsupported=[{"provider": "x", "operation": "getBlob"}])

    def test_retry_bounds(self):
        """Test retry attempt bounds."""
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValidationError):
            RetryConfig(delay_seconds=-1)

    def test_blank_api_key_rejected(self):
        """Test a blank api_key raises ValidationError."""
        with pytest.raises(ValidationError):
            ProviderConfig(
                name="etherscan",
                endpoints={"homestead": {"url": "https://api.etherscan.io/api", "api_key": " "}}
            )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
