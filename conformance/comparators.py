"""Field-by-field comparators between live results and fixtures.

Each comparator raises ``ConformanceMismatchError`` at the first field
that differs, naming the field with its canonical wire name (and index
path for nested or ordered values, e.g. ``logs[1].topics[0]``).

Rules:
- numeric fields compare by value, so ``0x01`` and ``0x1`` are equal;
- conditional fields are skipped, not asserted null, when their
  discriminant (fixture ``type``, live ``status``/``root``) says so;
- ordered collections compare length first, then each index in order;
- the fixture signature ``v`` is matched against the live ``network_v``.
"""

from typing import Any, Mapping, Optional, Union

from core.encoding import to_quantity
from core.exceptions import ConformanceMismatchError, ShapeInvariantError
from conformance.fixtures import (
    BlockFixture,
    LogFixture,
    ReceiptFixture,
    TxFixture,
)
from providers.models import Block, Log, TransactionReceipt, TransactionResponse

# Transaction type carrying EIP-1559 fee fields
FEE_MARKET_TX_TYPE = 2


def _expect(field: str, actual: Any, expected: Any) -> None:
    if actual != expected:
        raise ConformanceMismatchError(field, expected, actual)


def _expect_quantity(field: str, actual: Any, expected: Any) -> None:
    if actual is None or expected is None:
        _expect(field, actual, expected)
        return
    try:
        equal = to_quantity(actual) == to_quantity(expected)
    except ValueError:
        equal = False
    if not equal:
        raise ConformanceMismatchError(field, expected, actual)


def _expect_present(field: str, actual: Any) -> None:
    if actual is None:
        raise ConformanceMismatchError(field, "not null", None)


def _expect_length(field: str, actual: list, expected: tuple) -> None:
    if len(actual) != len(expected):
        raise ConformanceMismatchError(field, len(expected), len(actual))


def check_balance(actual: Any, expected: int) -> None:
    _expect_quantity("balance", actual, expected)


def check_code(actual: Any, expected: str) -> None:
    _expect("code", actual, expected)


def check_name(actual: Optional[str], expected: str) -> None:
    _expect("name", actual, expected)


def check_storage(actual: Mapping[str, Any], expected: Mapping[str, str]) -> None:
    """Compare storage values slot by slot, in fixture order."""
    for slot, value in expected.items():
        _expect(f"storage:{slot}", actual.get(slot), value)


def check_block(actual: Optional[Block], expected: BlockFixture) -> None:
    """Compare a fetched block against its fixture."""
    _expect_present("block", actual)

    _expect("hash", actual.hash, expected.hash)
    _expect("parentHash", actual.parent_hash, expected.parent_hash)
    _expect_quantity("number", actual.number, expected.number)
    _expect_quantity("timestamp", actual.timestamp, expected.timestamp)
    _expect("nonce", actual.nonce, expected.nonce)
    _expect_quantity("difficulty", actual.difficulty, expected.difficulty)
    _expect_quantity("gasLimit", actual.gas_limit, expected.gas_limit)
    _expect_quantity("gasUsed", actual.gas_used, expected.gas_used)
    _expect("miner", actual.miner, expected.miner)
    _expect("extraData", actual.extra_data, expected.extra_data)

    if expected.base_fee_per_gas is not None:
        _expect_quantity("baseFeePerGas", actual.base_fee_per_gas, expected.base_fee_per_gas)

    if actual.transactions is None:
        raise ConformanceMismatchError("hasTxs", "transactions", None)
    _expect_length("txs.length", actual.transactions, expected.transactions)
    for i, (atx, ttx) in enumerate(zip(actual.transactions, expected.transactions)):
        _check_block_transaction(i, atx, ttx)


def _check_block_transaction(
    i: int,
    actual: Union[str, TransactionResponse],
    expected: Union[str, TxFixture],
) -> None:
    field = f"txs[{i}]"
    if isinstance(expected, TxFixture):
        if not isinstance(actual, TransactionResponse):
            raise ConformanceMismatchError(field, expected.hash, actual)
        check_transaction(actual, expected, prefix=f"{field}.")
        return

    actual_hash = actual.hash if isinstance(actual, TransactionResponse) else actual
    _expect(field, actual_hash, expected)


def check_transaction(
    actual: Optional[TransactionResponse],
    expected: TxFixture,
    prefix: str = "",
) -> None:
    """Compare a fetched transaction against its fixture."""
    _expect_present(f"{prefix}transaction", actual)

    _expect(f"{prefix}hash", actual.hash, expected.hash)
    _expect(f"{prefix}blockHash", actual.block_hash, expected.block_hash)
    _expect_quantity(f"{prefix}blockNumber", actual.block_number, expected.block_number)
    _expect_quantity(f"{prefix}type", actual.type, expected.type)
    _expect_quantity(f"{prefix}index", actual.index, expected.index)
    _expect(f"{prefix}from", actual.from_address, expected.from_address)
    _expect(f"{prefix}to", actual.to, expected.to)

    _expect_quantity(f"{prefix}gasLimit", actual.gas_limit, expected.gas_limit)

    _expect_quantity(f"{prefix}gasPrice", actual.gas_price, expected.gas_price)
    if expected.type == FEE_MARKET_TX_TYPE:
        _expect_quantity(f"{prefix}maxFeePerGas", actual.max_fee_per_gas, expected.max_fee_per_gas)
        _expect_quantity(
            f"{prefix}maxPriorityFeePerGas",
            actual.max_priority_fee_per_gas,
            expected.max_priority_fee_per_gas,
        )
    else:
        _expect(f"{prefix}maxFeePerGas:null", actual.max_fee_per_gas, None)
        _expect(f"{prefix}maxPriorityFeePerGas:null", actual.max_priority_fee_per_gas, None)

    _expect_quantity(f"{prefix}value", actual.value, expected.value)
    _expect_quantity(f"{prefix}nonce", actual.nonce, expected.nonce)
    _expect(f"{prefix}data", actual.data, expected.data)

    _expect(f"{prefix}creates", actual.creates, expected.creates)
    _expect_present(f"{prefix}signature", actual.signature)
    _expect(f"{prefix}signature.r", actual.signature.r, expected.signature.r)
    _expect(f"{prefix}signature.s", actual.signature.s, expected.signature.s)
    _expect_quantity(f"{prefix}signature.v", actual.signature.network_v, expected.signature.v)


def check_log(actual: Log, expected: LogFixture, prefix: str = "") -> None:
    """Compare a receipt log against its fixture."""
    _expect(f"{prefix}address", actual.address, expected.address)
    _expect(f"{prefix}blockHash", actual.block_hash, expected.block_hash)
    _expect_quantity(f"{prefix}blockNumber", actual.block_number, expected.block_number)
    _expect(f"{prefix}data", actual.data, expected.data)
    _expect_quantity(f"{prefix}logIndex", actual.index, expected.index)

    _expect_present(f"{prefix}topics", actual.topics)
    _expect_length(f"{prefix}topics.length", actual.topics, expected.topics)
    for i, (atopic, ttopic) in enumerate(zip(actual.topics, expected.topics)):
        _expect(f"{prefix}topics[{i}]", atopic, ttopic)

    _expect(f"{prefix}transactionHash", actual.transaction_hash, expected.transaction_hash)
    _expect_quantity(
        f"{prefix}transactionIndex", actual.transaction_index, expected.transaction_index
    )


def check_receipt(actual: Optional[TransactionReceipt], expected: ReceiptFixture) -> None:
    """Compare a fetched receipt against its fixture."""
    _expect_present("receipt", actual)

    _expect("hash", actual.hash, expected.hash)
    _expect_quantity("index", actual.index, expected.index)

    _expect("to", actual.to, expected.to)
    _expect("from", actual.from_address, expected.from_address)
    _expect("contractAddress", actual.contract_address, expected.contract_address)

    _expect("blockHash", actual.block_hash, expected.block_hash)
    _expect_quantity("blockNumber", actual.block_number, expected.block_number)

    _expect("logsBloom", actual.logs_bloom, expected.logs_bloom)

    _expect_present("logs", actual.logs)
    _expect_length("logs.length", actual.logs, expected.logs)
    for i, (alog, tlog) in enumerate(zip(actual.logs, expected.logs)):
        check_log(alog, tlog, prefix=f"logs[{i}].")

    _expect_quantity("gasUsed", actual.gas_used, expected.gas_used)
    _expect_quantity("cumulativeGasUsed", actual.cumulative_gas_used, expected.cumulative_gas_used)
    _expect_quantity("gasPrice", actual.gas_price, expected.gas_price)

    # Some backends add status to pre-Byzantium receipts and some drop
    # root, so each is only checked when the live result carries it.
    if actual.status is not None:
        _expect_quantity("status", actual.status, expected.status)
    if actual.root is not None:
        _expect("root", actual.root, expected.root)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_pending_block(actual: Optional[Block]) -> None:
    """Check the shape invariants of a pending (unsealed) block."""
    if actual is None:
        raise ShapeInvariantError("block", "a pending block", None)
    if actual.hash is not None:
        raise ShapeInvariantError("hash", None, actual.hash)
    if not _is_int(actual.number):
        raise ShapeInvariantError("number", "int", actual.number)
    if not _is_int(actual.timestamp):
        raise ShapeInvariantError("timestamp", "int", actual.timestamp)
