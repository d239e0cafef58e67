"""Etherscan API provider.

Etherscan exposes a subset of JSON-RPC through its ``proxy`` module and
account balances through the ``account`` module. It has no equivalent of
``eth_getBlockByHash``, so looking up a block by hash is unsupported.
"""

import logging
from typing import Any

from core.exceptions import ProviderResponseError, RateLimitError
from core.operations import Operation
from providers.base import RpcProvider


logger = logging.getLogger(__name__)


class EtherscanProvider(RpcProvider):
    """Provider backed by the Etherscan HTTP API (GET requests)."""

    UNSUPPORTED_METHODS = {
        "eth_getBlockByHash": Operation.GET_BLOCK_BY_HASH,
    }

    def _build_params(self, method: str, params: list[Any]) -> dict[str, str]:
        """Map a JSON-RPC call onto Etherscan query parameters."""
        if method == "eth_getBalance":
            address, tag = params
            return {"module": "account", "action": "balance", "address": address, "tag": tag}

        query: dict[str, str] = {"module": "proxy", "action": method}

        if method == "eth_getCode":
            query.update(address=params[0], tag=params[1])
        elif method == "eth_getStorageAt":
            query.update(address=params[0], position=params[1], tag=params[2])
        elif method == "eth_getBlockByNumber":
            query.update(tag=params[0], boolean="true" if params[1] else "false")
        elif method in ("eth_getTransactionByHash", "eth_getTransactionReceipt"):
            query.update(txhash=params[0])
        elif method == "eth_call":
            call, tag = params
            query.update(to=call["to"], data=call["data"], tag=tag)
        else:
            raise ProviderResponseError(
                self.name, error_message=f"no Etherscan mapping for {method}"
            )
        return query

    async def _send(self, method: str, params: list[Any]) -> Any:
        query = self._build_params(method, params)
        if self.api_key:
            query["apikey"] = self.api_key

        data = await self._request("GET", self.url, method, params=query)

        if not isinstance(data, dict):
            raise ProviderResponseError(
                self.name,
                error_message=f"expected JSON object, got {type(data).__name__}",
            )

        if query["module"] == "account":
            return self._account_result(method, data)
        return self._proxy_result(method, data)

    def _account_result(self, method: str, data: dict) -> Any:
        """Unwrap an ``account`` module response ({status, message, result})."""
        message = data.get("message", "")
        result = data.get("result")

        if data.get("status") != "1":
            if self._is_rate_limit_message(message) or self._is_rate_limit_message(result):
                logger.warning(
                    f"API-level rate limit from {self.name}",
                    extra={"provider": self.name, "rpc_method": method}
                )
                raise RateLimitError(self.name)
            raise ProviderResponseError(
                self.name,
                error_message=f"{message}: {result}" if result else message,
            )
        return result

    def _proxy_result(self, method: str, data: dict) -> Any:
        """Unwrap a ``proxy`` module response (JSON-RPC shaped, or an error envelope)."""
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            if self._is_rate_limit_message(message):
                raise RateLimitError(self.name)
            raise ProviderResponseError(
                self.name,
                error_message=message,
                rpc_code=error.get("code") if isinstance(error, dict) else None,
            )

        # Throttled proxy calls come back in the account envelope
        if data.get("status") == "0":
            result = data.get("result")
            if self._is_rate_limit_message(data.get("message")) or self._is_rate_limit_message(result):
                logger.warning(
                    f"API-level rate limit from {self.name}",
                    extra={"provider": self.name, "rpc_method": method}
                )
                raise RateLimitError(self.name)
            raise ProviderResponseError(self.name, error_message=str(result or data.get("message")))

        if "result" not in data:
            raise ProviderResponseError(self.name, error_message="missing result")
        return data["result"]
