"""Normalised result models returned by provider backends.

JSON-RPC payloads are converted once, here, into plain dataclasses:
quantities become ``int``, addresses are checksummed and hashes/data are
lower-case hex. Comparators then only ever see these shapes.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import rlp
from eth_utils import keccak, to_canonical_address, to_checksum_address

from core.encoding import (
    normalize_address,
    normalize_hex,
    pad_hex32,
    to_optional_quantity,
    to_quantity,
)


def contract_address(sender: str, nonce: int) -> str:
    """Compute the address of a contract created by ``sender`` at ``nonce``."""
    encoded = rlp.encode([to_canonical_address(sender), nonce])
    return to_checksum_address(keccak(encoded)[12:])


@dataclass
class Signature:
    """Transaction signature.

    ``network_v`` is the raw ``v`` as sent on the wire (EIP-155 chain-aware
    for legacy transactions, the y-parity for typed ones); ``v`` is the
    canonical 27/28 form.
    """

    r: str
    s: str
    v: int
    network_v: int

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "Signature":
        network_v = to_quantity(data["v"])
        if "yParity" in data and data["yParity"] is not None:
            parity = to_quantity(data["yParity"])
        elif network_v in (0, 1):
            parity = network_v
        elif network_v in (27, 28):
            parity = network_v - 27
        else:
            # EIP-155: v = chain_id * 2 + 35 + parity
            parity = (network_v - 35) % 2
        return cls(
            r=pad_hex32(data["r"]),
            s=pad_hex32(data["s"]),
            v=27 + parity,
            network_v=network_v,
        )


@dataclass
class TransactionResponse:
    """A transaction as returned by ``getTransaction``."""

    hash: str
    block_hash: Optional[str]
    block_number: Optional[int]
    type: int
    index: Optional[int]
    from_address: str
    to: Optional[str]
    gas_limit: int
    gas_price: Optional[int]
    value: int
    nonce: int
    data: str
    signature: Signature
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    chain_id: Optional[int] = None
    creates: Optional[str] = None

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "TransactionResponse":
        from_address = normalize_address(data["from"])
        to = normalize_address(data.get("to"))
        nonce = to_quantity(data["nonce"])
        tx_type = to_optional_quantity(data.get("type"))

        return cls(
            hash=normalize_hex(data["hash"]),
            block_hash=normalize_hex(data.get("blockHash")),
            block_number=to_optional_quantity(data.get("blockNumber")),
            type=tx_type if tx_type is not None else 0,
            index=to_optional_quantity(data.get("transactionIndex")),
            from_address=from_address,
            to=to,
            gas_limit=to_quantity(data["gas"]),
            gas_price=to_optional_quantity(data.get("gasPrice")),
            value=to_quantity(data["value"]),
            nonce=nonce,
            data=normalize_hex(data.get("input") or "0x"),
            signature=Signature.from_rpc(data),
            max_fee_per_gas=to_optional_quantity(data.get("maxFeePerGas")),
            max_priority_fee_per_gas=to_optional_quantity(data.get("maxPriorityFeePerGas")),
            chain_id=to_optional_quantity(data.get("chainId")),
            creates=contract_address(from_address, nonce) if to is None else None,
        )


@dataclass
class Block:
    """A block as returned by ``getBlock``; ``hash`` is None while pending."""

    hash: Optional[str]
    parent_hash: str
    number: Optional[int]
    timestamp: int
    nonce: Optional[str]
    difficulty: int
    gas_limit: int
    gas_used: int
    miner: Optional[str]
    extra_data: str
    base_fee_per_gas: Optional[int] = None
    transactions: list[Union[str, TransactionResponse]] = field(default_factory=list)

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "Block":
        transactions: list[Union[str, TransactionResponse]] = []
        for tx in data.get("transactions") or []:
            if isinstance(tx, dict):
                transactions.append(TransactionResponse.from_rpc(tx))
            else:
                transactions.append(normalize_hex(tx))

        return cls(
            hash=normalize_hex(data.get("hash")),
            parent_hash=normalize_hex(data["parentHash"]),
            number=to_optional_quantity(data.get("number")),
            timestamp=to_quantity(data["timestamp"]),
            nonce=normalize_hex(data.get("nonce")),
            difficulty=to_quantity(data.get("difficulty") or 0),
            gas_limit=to_quantity(data["gasLimit"]),
            gas_used=to_quantity(data["gasUsed"]),
            miner=normalize_address(data.get("miner")),
            extra_data=normalize_hex(data.get("extraData") or "0x"),
            base_fee_per_gas=to_optional_quantity(data.get("baseFeePerGas")),
            transactions=transactions,
        )


@dataclass
class Log:
    """An event log inside a receipt."""

    address: str
    block_hash: str
    block_number: int
    data: str
    index: int
    topics: list[str]
    transaction_hash: str
    transaction_index: int
    removed: bool = False

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "Log":
        return cls(
            address=normalize_address(data["address"]),
            block_hash=normalize_hex(data["blockHash"]),
            block_number=to_quantity(data["blockNumber"]),
            data=normalize_hex(data.get("data") or "0x"),
            index=to_quantity(data["logIndex"]),
            topics=[normalize_hex(topic) for topic in data.get("topics") or []],
            transaction_hash=normalize_hex(data["transactionHash"]),
            transaction_index=to_quantity(data["transactionIndex"]),
            removed=bool(data.get("removed", False)),
        )


@dataclass
class TransactionReceipt:
    """A receipt as returned by ``getTransactionReceipt``.

    ``status`` and ``root`` are None when the backend omits them; which
    one a pre-Byzantium receipt carries varies between backends.
    """

    hash: str
    index: int
    to: Optional[str]
    from_address: str
    contract_address: Optional[str]
    block_hash: str
    block_number: int
    logs_bloom: str
    logs: list[Log]
    gas_used: int
    cumulative_gas_used: int
    gas_price: Optional[int]
    type: int = 0
    status: Optional[int] = None
    root: Optional[str] = None

    @classmethod
    def from_rpc(cls, data: dict[str, Any]) -> "TransactionReceipt":
        gas_price = data.get("effectiveGasPrice")
        if gas_price is None:
            gas_price = data.get("gasPrice")
        tx_type = to_optional_quantity(data.get("type"))

        return cls(
            hash=normalize_hex(data["transactionHash"]),
            index=to_quantity(data["transactionIndex"]),
            to=normalize_address(data.get("to")),
            from_address=normalize_address(data["from"]),
            contract_address=normalize_address(data.get("contractAddress")),
            block_hash=normalize_hex(data["blockHash"]),
            block_number=to_quantity(data["blockNumber"]),
            logs_bloom=normalize_hex(data["logsBloom"]),
            logs=[Log.from_rpc(log) for log in data.get("logs") or []],
            gas_used=to_quantity(data["gasUsed"]),
            cumulative_gas_used=to_quantity(data["cumulativeGasUsed"]),
            gas_price=to_optional_quantity(gas_price),
            type=tx_type if tx_type is not None else 0,
            status=to_optional_quantity(data.get("status")),
            root=normalize_hex(data.get("root")),
        )
