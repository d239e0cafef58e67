"""Provider for plain JSON-RPC 2.0 endpoints (node gateways)."""

import logging
from typing import Any

from core.exceptions import ProviderResponseError, RateLimitError
from providers.base import RpcProvider


logger = logging.getLogger(__name__)

# JSON-RPC error codes gateways use for throttling
RATE_LIMIT_CODES = (-32005, -32029, 429)


class JsonRpcProvider(RpcProvider):
    """Provider speaking JSON-RPC 2.0 over HTTP POST.

    Covers node gateways such as Infura, Alchemy, Ankr or a local node.
    An ``api_key`` is not sent separately; gateways that need one embed it
    in the URL.
    """

    async def _send(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_request_id(),
            "method": method,
            "params": params,
        }

        data = await self._request("POST", self.url, method, json=payload)

        if not isinstance(data, dict):
            raise ProviderResponseError(
                self.name,
                error_message=f"expected JSON object, got {type(data).__name__}",
            )

        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            if code in RATE_LIMIT_CODES or self._is_rate_limit_message(message):
                logger.warning(
                    f"JSON-RPC rate limit from {self.name}: {message}",
                    extra={"provider": self.name, "rpc_method": method, "rpc_code": code}
                )
                raise RateLimitError(self.name)
            raise ProviderResponseError(self.name, error_message=message, rpc_code=code)

        if "result" not in data:
            raise ProviderResponseError(self.name, error_message="missing result")

        return data["result"]
