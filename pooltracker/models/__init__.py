"""Shared types and pydantic models for the pooltracker API."""

from pooltracker.models.types import (
    UINT256_MAX,
    ZERO_ADDRESS,
    Address,
    Uint256,
    derive_address,
    is_valid_address,
    normalize_address,
)

__all__ = [
    # Types
    "Address",
    "Uint256",
    "UINT256_MAX",
    "ZERO_ADDRESS",
    # Address helpers
    "normalize_address",
    "is_valid_address",
    "derive_address",
]
