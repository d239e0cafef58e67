"""Configuration management module for the provider conformance harness."""

from config.models import (
    Config,
    EndpointConfig,
    ProviderConfig,
    ProviderKind,
    RetryConfig,
    HarnessConfig,
    SkipEntryConfig,
    SkipMatrixConfig,
    LoggingConfig,
)
from config.loader import ConfigurationManager

__all__ = [
    "Config",
    "EndpointConfig",
    "ProviderConfig",
    "ProviderKind",
    "RetryConfig",
    "HarnessConfig",
    "SkipEntryConfig",
    "SkipMatrixConfig",
    "LoggingConfig",
    "ConfigurationManager",
]
