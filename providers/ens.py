"""ENS reverse resolution over plain ``eth_call``.

Reverse records are only trusted when the forward record of the returned
name resolves back to the same address.
"""

import logging
from typing import Awaitable, Callable, Optional

from eth_abi import decode, encode
from eth_utils import (
    function_signature_to_4byte_selector,
    keccak,
    to_checksum_address,
)

logger = logging.getLogger(__name__)

ENS_REGISTRY = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"

ENS_NETWORKS = frozenset({"homestead", "goerli", "sepolia", "holesky"})

EthCall = Callable[[str, str], Awaitable[str]]


def namehash(name: str) -> bytes:
    """Compute the ENS namehash of a dotted name."""
    node = b"\x00" * 32
    if name:
        for label in reversed(name.lower().split(".")):
            node = keccak(node + keccak(text=label))
    return node


def _calldata(signature: str, node: bytes) -> str:
    selector = function_signature_to_4byte_selector(signature)
    return "0x" + (selector + encode(["bytes32"], [node])).hex()


def _result_bytes(result: Optional[str]) -> bytes:
    if not result or result == "0x":
        return b""
    return bytes.fromhex(result[2:] if result.startswith("0x") else result)


async def _resolver(eth_call: EthCall, node: bytes) -> Optional[str]:
    raw = _result_bytes(await eth_call(ENS_REGISTRY, _calldata("resolver(bytes32)", node)))
    if len(raw) < 32:
        return None
    (resolver,) = decode(["address"], raw)
    if int(resolver, 16) == 0:
        return None
    return to_checksum_address(resolver)


async def resolve_name(eth_call: EthCall, name: str) -> Optional[str]:
    """Resolve a name to its address, or None if it has no address record."""
    node = namehash(name)
    resolver = await _resolver(eth_call, node)
    if resolver is None:
        return None

    raw = _result_bytes(await eth_call(resolver, _calldata("addr(bytes32)", node)))
    if len(raw) < 32:
        return None
    (address,) = decode(["address"], raw)
    if int(address, 16) == 0:
        return None
    return to_checksum_address(address)


async def lookup_address(eth_call: EthCall, address: str) -> Optional[str]:
    """Resolve the primary ENS name of an address.

    Args:
        eth_call: Coroutine performing ``eth_call(to, data)`` at latest.
        address: The address to look up.

    Returns:
        The verified name, or None if there is no (verified) reverse record.
    """
    address = to_checksum_address(address)
    node = namehash(f"{address[2:].lower()}.addr.reverse")

    resolver = await _resolver(eth_call, node)
    if resolver is None:
        return None

    raw = _result_bytes(await eth_call(resolver, _calldata("name(bytes32)", node)))
    if not raw:
        return None
    (name,) = decode(["string"], raw)
    if not name:
        return None

    if await resolve_name(eth_call, name) != address:
        logger.debug(
            f"Reverse record {name} for {address} does not resolve back",
            extra={"address": address}
        )
        return None
    return name
