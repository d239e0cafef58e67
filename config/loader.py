"""Configuration loader that reads from JSON file and environment variables."""

import json
import logging
import os
import re
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from config.models import Config, ProviderConfig

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        env_file: Optional[str] = None
    ):
        """Initialize configuration manager.

        Args:
            config_path: Path to JSON configuration file (default: ./config.json)
            env_file: Path to .env file (default: ./.env)
        """
        self.config_path = config_path or "./config.json"
        self.env_file = env_file or "./.env"
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from JSON file and environment variables.

        Environment variables take precedence over JSON file values.

        Returns:
            Validated Config object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If configuration is invalid
            json.JSONDecodeError: If JSON is malformed
        """
        if Path(self.env_file).exists():
            load_dotenv(self.env_file)

        config_data = self._load_json_config()
        config_data = self._override_with_env(config_data)
        self._config = Config(**config_data)
        return self._config

    def _load_json_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file."""
        config_path = Path(self.config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(config_path, "r") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise json.JSONDecodeError(
                    f"Invalid JSON in configuration file: {e.msg}",
                    e.doc,
                    e.pos
                )

    def _override_with_env(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Override configuration values with environment variables."""
        fixtures_path = os.getenv("FIXTURES_PATH")
        if fixtures_path:
            config_data["fixtures_path"] = fixtures_path

        # Retry configuration
        if "retry" not in config_data:
            config_data["retry"] = {}

        retry_mapping = {
            "RETRY_MAX_ATTEMPTS": ("max_attempts", int),
            "RETRY_DELAY_SECONDS": ("delay_seconds", float),
            "REQUEST_TIMEOUT_SECONDS": ("request_timeout_seconds", int),
        }

        for env_var, (key, converter) in retry_mapping.items():
            value = os.getenv(env_var)
            if value:
                try:
                    config_data["retry"][key] = converter(value)
                except ValueError:
                    raise ValueError(f"Invalid {env_var}: must be a number")

        # Harness configuration
        if "harness" not in config_data:
            config_data["harness"] = {}

        harness_mapping = {
            "THROTTLE_SECONDS": ("throttle_seconds", float),
            "CASE_TIMEOUT_SECONDS": ("case_timeout_seconds", float),
            "PENDING_BLOCK_TIMEOUT_SECONDS": ("pending_block_timeout_seconds", float),
        }

        for env_var, (key, converter) in harness_mapping.items():
            value = os.getenv(env_var)
            if value:
                try:
                    config_data["harness"][key] = converter(value)
                except ValueError:
                    raise ValueError(f"Invalid {env_var}: must be a number")

        pending_network = os.getenv("PENDING_BLOCK_NETWORK")
        if pending_network:
            config_data["harness"]["pending_block_network"] = pending_network

        # Logging configuration
        if "logging" not in config_data:
            config_data["logging"] = {}

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            config_data["logging"]["level"] = log_level.upper()

        log_format = os.getenv("LOG_FORMAT")
        if log_format:
            config_data["logging"]["format"] = log_format

        # Provider endpoints and credentials
        for provider in config_data.get("providers", []):
            self._resolve_provider_endpoints(provider)

        return config_data

    def _resolve_provider_endpoints(self, provider: Dict[str, Any]) -> None:
        """Resolve ${ENV_VAR} placeholders in a provider's endpoints.

        An endpoint whose placeholder has no value in the environment is
        dropped: a missing credential is a configuration gap that excludes
        the (provider, network) pair rather than an error.
        """
        name = provider.get("name", "")
        key_env_var = f"{name.upper()}_API_KEY"
        key_override = os.getenv(key_env_var)

        endpoints = provider.get("endpoints", {})
        resolved: Dict[str, Any] = {}

        for network, endpoint in endpoints.items():
            endpoint = dict(endpoint)
            if key_override and "api_key" in endpoint:
                endpoint["api_key"] = key_override

            missing = []
            for key in ("url", "api_key"):
                value = endpoint.get(key)
                if not isinstance(value, str):
                    continue
                endpoint[key], unresolved = self._substitute(value)
                missing.extend(unresolved)

            if missing:
                logger.info(
                    f"Skipping {name}:{network} endpoint, unset environment "
                    f"variables: {', '.join(sorted(set(missing)))}",
                    extra={"provider": name, "network": network}
                )
                continue

            resolved[network] = endpoint

        provider["endpoints"] = resolved

    @staticmethod
    def _substitute(value: str) -> tuple[str, list[str]]:
        """Substitute ${ENV_VAR} placeholders in a string.

        Returns:
            The substituted string and the names of unset variables.
        """
        missing: list[str] = []

        def replace(match: re.Match) -> str:
            env_value = os.getenv(match.group(1))
            if not env_value:
                missing.append(match.group(1))
                return match.group(0)
            return env_value

        return PLACEHOLDER_PATTERN.sub(replace, value), missing

    def get_provider_configs(self) -> list[ProviderConfig]:
        """Get list of provider configurations."""
        if not self._config:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")
        return self._config.providers

    def get_provider_by_name(self, name: str) -> Optional[ProviderConfig]:
        """Get provider configuration by name."""
        if not self._config:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")

        for provider in self._config.providers:
            if provider.name.lower() == name.lower():
                return provider

        return None
