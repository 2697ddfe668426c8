"""Shared type definitions for pooltracker models.

These types are used across the registry, pools, metrics and API models.
"""

from collections.abc import Sequence
from typing import Annotated, Any

from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import keccak
from pydantic import BeforeValidator, Field

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

# Placeholder for "no pool" / "no owner", as on-chain mappings return it
ZERO_ADDRESS = "0x" + "00" * 20


def validate_uint256(value: Any) -> str:
    """Validate that a value is a valid uint256 decimal string.

    Args:
        value: Value to validate (string or int)

    Returns:
        Valid uint256 as decimal string

    Raises:
        ValueError: If value is not a valid non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint256 must be string or int, got bool")

    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Uint256 cannot be negative: {value}")
        if value > UINT256_MAX:
            raise ValueError(f"Uint256 overflow: {value} > 2^256-1")
        return str(value)

    if not isinstance(value, str):
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    try:
        int_value = int(value)
    except ValueError as err:
        raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err

    if int_value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if int_value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")

    return value


# Ethereum-style address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# 256-bit unsigned integer as decimal string (validated)
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase with 0x prefix.

    Args:
        address: An address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid address (0x + 40 hex chars)."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def address_bytes(address: str) -> bytes:
    """Convert a 0x-prefixed address to its 20 raw bytes for ABI encoding."""
    return bytes.fromhex(normalize_address(address, validate=True)[2:])


def derive_address(types: Sequence[str], values: Sequence[Any]) -> str:
    """Derive a deterministic address from ABI-encoded creation parameters.

    The address is the last 20 bytes of keccak256(abi.encode(values)), the
    same construction contract factories use for deterministic deployment.

    Args:
        types: ABI types, e.g. ["address", "address", "uint256"]
        values: Values to encode (addresses as raw 20-byte values)

    Returns:
        Lowercase 0x-prefixed address
    """
    digest = keccak(encode(list(types), list(values)))
    return "0x" + digest[-20:].hex()
