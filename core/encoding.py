"""Normalisation helpers for hex-encoded blockchain values.

JSON-RPC quantities arrive as ``0x``-prefixed hex of arbitrary width,
explorer APIs sometimes answer with decimal strings, and fixtures may use
either form or plain integers. Everything numeric is compared as ``int``.
"""

import re
from typing import Any, Optional

from eth_utils import is_address, is_hex, to_checksum_address

HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]*$")
DECIMAL_PATTERN = re.compile(r"^[0-9]+$")


def to_quantity(value: Any) -> int:
    """Convert an int, hex string or decimal string to an int.

    Args:
        value: The raw quantity.

    Returns:
        The integer value.

    Raises:
        ValueError: If the value is not a recognised quantity.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if HEX_PATTERN.match(text):
            # "0x" alone is how some nodes encode zero
            return int(text[2:] or "0", 16)
        if DECIMAL_PATTERN.match(text):
            return int(text)
    raise ValueError(f"Invalid quantity: {value!r}")


def to_optional_quantity(value: Any) -> Optional[int]:
    """Like :func:`to_quantity` but passes ``None`` through."""
    if value is None:
        return None
    return to_quantity(value)


def normalize_hex(value: Optional[str]) -> Optional[str]:
    """Lower-case a hex data string, keeping ``None`` as ``None``."""
    if value is None:
        return None
    if not isinstance(value, str) or not is_hex(value):
        raise ValueError(f"Invalid hex data: {value!r}")
    return value.lower()


def normalize_address(value: Optional[str]) -> Optional[str]:
    """Checksum an address, keeping ``None`` as ``None``."""
    if value is None:
        return None
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def is_block_hash(value: Any) -> bool:
    """Check whether a block identifier is a 32-byte hash."""
    return isinstance(value, str) and len(value) == 66 and bool(HEX_PATTERN.match(value))


def pad_hex32(value: Any) -> str:
    """Zero-pad a 256-bit value (e.g. a signature component) to 32-byte hex."""
    return "0x" + format(to_quantity(value), "064x")
