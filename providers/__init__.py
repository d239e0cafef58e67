"""Provider backends under conformance test."""

from providers.base import Provider, RpcProvider
from providers.models import (
    Block,
    Log,
    Signature,
    TransactionReceipt,
    TransactionResponse,
)
from providers.jsonrpc import JsonRpcProvider
from providers.etherscan import EtherscanProvider
from providers.registry import ProviderRegistry

__all__ = [
    "Provider",
    "RpcProvider",
    "Block",
    "Log",
    "Signature",
    "TransactionReceipt",
    "TransactionResponse",
    "JsonRpcProvider",
    "EtherscanProvider",
    "ProviderRegistry",
]
