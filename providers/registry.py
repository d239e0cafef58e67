"""Provider registry: (provider name, network) -> live provider or None."""

import logging
from typing import Optional

from config.models import Config, ProviderConfig, ProviderKind, RetryConfig
from providers.base import Provider, RpcProvider
from providers.etherscan import EtherscanProvider
from providers.jsonrpc import JsonRpcProvider


logger = logging.getLogger(__name__)

# Mapping of provider kinds to provider classes
PROVIDER_CLASSES: dict[ProviderKind, type[RpcProvider]] = {
    ProviderKind.JSONRPC: JsonRpcProvider,
    ProviderKind.ETHERSCAN: EtherscanProvider,
}


class ProviderRegistry:
    """Creates and caches one provider per configured (name, network).

    A combination without a configured endpoint maps to None: that is a
    configuration gap, not an error.
    """

    def __init__(
        self,
        providers: list[ProviderConfig],
        retry_config: Optional[RetryConfig] = None
    ):
        self._configs = {provider.name: provider for provider in providers}
        self._retry_config = retry_config or RetryConfig()
        self._instances: dict[tuple[str, str], Provider] = {}

    @classmethod
    def from_config(cls, config: Config) -> "ProviderRegistry":
        return cls(config.providers, config.retry)

    @property
    def provider_names(self) -> list[str]:
        """Configured and registered provider names, in first-seen order."""
        names = list(self._configs)
        for name, _ in self._instances:
            if name not in names:
                names.append(name)
        return names

    def networks_for(self, name: str) -> list[str]:
        """Networks with an endpoint for the given provider."""
        config = self._configs.get(name)
        networks = list(config.endpoints) if config else []
        for provider_name, network in self._instances:
            if provider_name == name and network not in networks:
                networks.append(network)
        return networks

    def register(self, provider: Provider) -> None:
        """Register an already-built provider (any Provider implementation)."""
        self._instances[(provider.name, provider.network)] = provider

    def get_provider(self, name: str, network: str) -> Optional[Provider]:
        """Get the provider for a (name, network) pair, or None if unavailable."""
        key = (name, network)
        if key in self._instances:
            return self._instances[key]

        config = self._configs.get(name)
        if config is None or network not in config.endpoints:
            return None

        provider_class = PROVIDER_CLASSES[config.kind]
        provider = provider_class(
            name=name,
            network=network,
            endpoint=config.endpoints[network],
            retry_config=self._retry_config,
        )
        logger.debug(
            f"Created {provider_class.__name__} for {name}:{network}",
            extra={"provider": name, "network": network}
        )
        self._instances[key] = provider
        return provider

    async def close(self) -> None:
        """Close every provider that holds network resources."""
        for provider in self._instances.values():
            close = getattr(provider, "close", None)
            if close is not None:
                await close()
        self._instances.clear()
