"""Provider capability interface and shared RPC plumbing."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Union, runtime_checkable

import aiohttp

from config.models import EndpointConfig, RetryConfig
from core.encoding import is_block_hash, normalize_hex, to_quantity
from core.exceptions import (
    ProviderConnectionError,
    ProviderResponseError,
    ProviderTimeoutError,
    RateLimitError,
    UnsupportedOperationError,
)
from core.operations import Operation
from providers import ens
from providers.models import Block, TransactionReceipt, TransactionResponse


logger = logging.getLogger(__name__)

BlockIdentifier = Union[int, str]

BLOCK_TAGS = ("latest", "earliest", "pending", "safe", "finalized")

RATE_LIMIT_INDICATORS = (
    "rate limit",
    "max rate limit",
    "too many requests",
    "exceeded the rate limit",
    "daily request count exceeded",
    "capacity exceeded",
)


@runtime_checkable
class Provider(Protocol):
    """Capability set a backend must expose to enter the conformance matrix.

    Any object with these coroutines is admissible; no base class needed.
    Failures raise errors from ``core.exceptions``; an operation the
    backend cannot perform at all raises ``UnsupportedOperationError``.
    """

    name: str
    network: str

    async def get_balance_of(self, address: str) -> int: ...

    async def get_code(self, address: str) -> str: ...

    async def lookup_address(self, address: str) -> Optional[str]: ...

    async def get_storage_at(self, address: str, slot: Union[int, str]) -> str: ...

    async def get_block(self, block: BlockIdentifier) -> Optional[Block]: ...

    async def get_transaction(self, tx_hash: str) -> Optional[TransactionResponse]: ...

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]: ...


class RpcProvider(ABC):
    """Base class for backends that speak Ethereum JSON-RPC semantics.

    Owns the aiohttp session and error classification. Concrete backends
    only implement ``_send`` for their transport. A provider makes exactly
    one attempt per call: retrying is the harness's job, so that every
    retry is visible in the run statistics.
    """

    # JSON-RPC method -> operation name for methods the backend cannot serve
    UNSUPPORTED_METHODS: dict[str, Operation] = {}

    def __init__(
        self,
        name: str,
        network: str,
        endpoint: EndpointConfig,
        retry_config: Optional[RetryConfig] = None
    ):
        """Initialize the provider.

        Args:
            name: Provider name as used in the matrix
            network: Network name (e.g., "homestead")
            endpoint: Endpoint URL and credentials
            retry_config: Supplies the request timeout (defaults if not provided)
        """
        self.name = name
        self.network = network
        self.endpoint = endpoint
        self.retry_config = retry_config or RetryConfig()
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_id = 0

    @property
    def url(self) -> str:
        """Get the endpoint URL."""
        return str(self.endpoint.url)

    @property
    def api_key(self) -> Optional[str]:
        """Get the API key."""
        return self.endpoint.api_key

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, network={self.network!r})"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create an aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self.retry_config.request_timeout_seconds
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "RpcProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _is_rate_limit_message(self, message: Any) -> bool:
        """Check if an error message indicates rate limiting."""
        if not isinstance(message, str):
            return False
        lowered = message.lower()
        return any(indicator in lowered for indicator in RATE_LIMIT_INDICATORS)

    async def _request(
        self,
        method: str,
        url: str,
        rpc_method: str,
        **kwargs: Any
    ) -> Any:
        """Perform one HTTP request and return the decoded JSON body.

        Classifies failures into the harness error taxonomy:
        - HTTP 429 and rate-limit messages -> RateLimitError
        - timeouts -> ProviderTimeoutError
        - connection failures -> ProviderConnectionError
        - other HTTP errors and malformed JSON -> ProviderResponseError
        """
        session = await self._get_session()
        log_extra = {"provider": self.name, "network": self.network, "rpc_method": rpc_method}

        logger.debug(f"Calling {rpc_method} on {self.name}:{self.network}", extra=log_extra)

        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    logger.warning(
                        f"HTTP 429 rate limit from {self.name}",
                        extra={**log_extra, "status_code": 429}
                    )
                    raise RateLimitError(
                        self.name,
                        int(retry_after) if retry_after and retry_after.isdigit() else None
                    )

                if response.status != 200:
                    error_text = await response.text()
                    if self._is_rate_limit_message(error_text):
                        raise RateLimitError(self.name)
                    raise ProviderResponseError(
                        self.name,
                        status_code=response.status,
                        response_body=error_text,
                    )

                try:
                    return await response.json(content_type=None)
                except ValueError as json_err:
                    raise ProviderResponseError(
                        self.name,
                        status_code=response.status,
                        error_message=f"invalid JSON: {json_err}",
                    )

        except asyncio.TimeoutError:
            logger.warning(
                f"Request timeout to {self.name} after {self.retry_config.request_timeout_seconds}s",
                extra={**log_extra, "error_type": "timeout"}
            )
            raise ProviderTimeoutError(
                self.name, self.retry_config.request_timeout_seconds, rpc_method
            )
        except aiohttp.ClientConnectorError as e:
            logger.warning(
                f"Connection error to {self.name}: {e}",
                extra={**log_extra, "error_type": "connection", "error": str(e)}
            )
            raise ProviderConnectionError(self.name, str(e), e)
        except aiohttp.ClientError as e:
            logger.warning(
                f"Network error from {self.name}: {e}",
                extra={**log_extra, "error_type": "network", "error": str(e)}
            )
            raise ProviderConnectionError(self.name, str(e), e)

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def send(self, method: str, params: list[Any]) -> Any:
        """Send a JSON-RPC call, refusing methods the backend cannot serve."""
        if method in self.UNSUPPORTED_METHODS:
            raise UnsupportedOperationError(self.UNSUPPORTED_METHODS[method].value, self.name)
        return await self._send(method, params)

    @abstractmethod
    async def _send(self, method: str, params: list[Any]) -> Any:
        """Perform a JSON-RPC call over the backend's transport.

        Args:
            method: JSON-RPC method name (e.g., "eth_getBalance")
            params: Positional JSON-RPC params

        Returns:
            The JSON-RPC ``result`` value
        """
        pass

    # ---------------------------------------------------------------
    # Capability set
    # ---------------------------------------------------------------

    async def get_balance_of(self, address: str) -> int:
        return to_quantity(await self.send("eth_getBalance", [address, "latest"]))

    async def get_code(self, address: str) -> str:
        return normalize_hex(await self.send("eth_getCode", [address, "latest"]))

    async def get_storage_at(self, address: str, slot: Union[int, str]) -> str:
        position = hex(to_quantity(slot))
        return normalize_hex(await self.send("eth_getStorageAt", [address, position, "latest"]))

    async def lookup_address(self, address: str) -> Optional[str]:
        if self.network not in ens.ENS_NETWORKS:
            raise UnsupportedOperationError(Operation.LOOKUP_ADDRESS.value, self.name)
        return await ens.lookup_address(self._eth_call, address)

    async def _eth_call(self, to: str, data: str) -> str:
        return await self.send("eth_call", [{"to": to, "data": data}, "latest"])

    async def get_block(self, block: BlockIdentifier) -> Optional[Block]:
        if is_block_hash(block):
            result = await self.send("eth_getBlockByHash", [block.lower(), False])
        elif isinstance(block, str) and block in BLOCK_TAGS:
            result = await self.send("eth_getBlockByNumber", [block, False])
        else:
            result = await self.send("eth_getBlockByNumber", [hex(to_quantity(block)), False])

        if result is None:
            return None
        return Block.from_rpc(result)

    async def get_transaction(self, tx_hash: str) -> Optional[TransactionResponse]:
        result = await self.send("eth_getTransactionByHash", [tx_hash])
        if result is None:
            return None
        return TransactionResponse.from_rpc(result)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        result = await self.send("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        return TransactionReceipt.from_rpc(result)
