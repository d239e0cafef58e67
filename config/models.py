"""Pydantic models for configuration schema validation."""

import logging
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, HttpUrl, field_validator, model_validator
from enum import Enum

from core.operations import Operation

# Use standard logging here since this module is loaded before our logging is configured
logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Wire protocol spoken by a provider backend."""
    JSONRPC = "jsonrpc"
    ETHERSCAN = "etherscan"


class EndpointConfig(BaseModel):
    """Connection details for one provider on one network."""

    url: HttpUrl = Field(..., description="Endpoint URL")
    api_key: Optional[str] = Field(default=None, description="API key, if the backend needs one")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate API key is not blank when given."""
        if v is None:
            return v
        if not v.strip():
            raise ValueError("API key cannot be empty")
        return v.strip()


class ProviderConfig(BaseModel):
    """Configuration for a provider backend across networks."""

    name: str = Field(..., description="Provider name (e.g., 'etherscan')")
    kind: ProviderKind = Field(default=ProviderKind.JSONRPC, description="Wire protocol")
    endpoints: Dict[str, EndpointConfig] = Field(
        default_factory=dict,
        description="Endpoint per network name (e.g., 'homestead')"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate provider name is not empty."""
        if not v or not v.strip():
            raise ValueError("Provider name cannot be empty")
        return v.lower().strip()

    @field_validator("endpoints")
    @classmethod
    def validate_networks(cls, v: Dict[str, EndpointConfig]) -> Dict[str, EndpointConfig]:
        """Normalize network names."""
        normalized = {}
        for network, endpoint in v.items():
            if not network or not network.strip():
                raise ValueError("Network name cannot be empty")
            normalized[network.lower().strip()] = endpoint
        return normalized


class RetryConfig(BaseModel):
    """Configuration for retry behavior of conformance cases."""

    max_attempts: int = Field(default=5, ge=1, le=10, description="Maximum attempts per case")
    delay_seconds: float = Field(default=1.0, ge=0, le=300, description="Fixed delay between attempts")
    request_timeout_seconds: int = Field(default=30, ge=1, le=120, description="Provider request timeout")


class HarnessConfig(BaseModel):
    """Configuration for the test matrix driver."""

    throttle_seconds: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Fixed pause before every case"
    )
    case_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Timeout for a single case attempt"
    )
    pending_block_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=600,
        description="Timeout for the pending block case"
    )
    pending_block_network: str = Field(
        default="homestead",
        description="Network used for the pending block case"
    )

    @field_validator("pending_block_network")
    @classmethod
    def validate_pending_network(cls, v: str) -> str:
        """Normalize network name."""
        if not v or not v.strip():
            raise ValueError("Pending block network cannot be empty")
        return v.lower().strip()


class SkipEntryConfig(BaseModel):
    """A (provider, operation) pair known to be unsupported."""

    provider: str = Field(..., description="Provider name")
    operation: Operation = Field(..., description="Unsupported operation")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Normalize provider name."""
        if not v or not v.strip():
            raise ValueError("Provider name cannot be empty")
        return v.lower().strip()


class SkipMatrixConfig(BaseModel):
    """Configuration for the capability/skip matrix."""

    unsupported: List[SkipEntryConfig] = Field(
        default_factory=lambda: [
            SkipEntryConfig(provider="etherscan", operation=Operation.GET_BLOCK_BY_HASH),
        ],
        description="Operations each provider is known not to support"
    )
    excluded_providers: List[str] = Field(
        default_factory=lambda: ["cloudflare"],
        description="Providers excluded from the matrix entirely"
    )

    @field_validator("excluded_providers")
    @classmethod
    def validate_excluded(cls, v: List[str]) -> List[str]:
        """Normalize provider names."""
        return [name.lower().strip() for name in v if name and name.strip()]


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    format: Literal["json", "text"] = Field(default="json", description="Log format")


class Config(BaseModel):
    """Main configuration model."""

    providers: List[ProviderConfig] = Field(
        default_factory=list,
        description="Provider backends under test"
    )
    fixtures_path: str = Field(
        default="./fixtures",
        description="Fixture JSON file or directory of <network>.json files"
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry configuration"
    )
    harness: HarnessConfig = Field(
        default_factory=HarnessConfig,
        description="Matrix driver configuration"
    )
    skip_matrix: SkipMatrixConfig = Field(
        default_factory=SkipMatrixConfig,
        description="Capability/skip matrix"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration"
    )

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, v: List[ProviderConfig]) -> List[ProviderConfig]:
        """Validate provider names are unique."""
        names = [provider.name for provider in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate provider names: {', '.join(duplicates)}")
        return v

    @model_validator(mode="after")
    def warn_on_unknown_skip_providers(self) -> "Config":
        """Warn about skip entries that name no configured provider."""
        known = {provider.name for provider in self.providers}
        for entry in self.skip_matrix.unsupported:
            if known and entry.provider not in known:
                logger.warning(
                    f"Skip matrix entry for unknown provider '{entry.provider}' "
                    f"({entry.operation.value}) will have no effect"
                )
        return self
