"""Safe integer wrapper for arithmetic on token amounts and prices.

This module provides SafeInt, a lightweight wrapper that makes arithmetic
operations safe by default:
- Division by zero raises DivisionByZeroError
- Subtraction underflow raises UnderflowError
- uint256 overflow is caught on conversion

Usage pattern:
    from pooltracker.safe_int import S

    def tvl_ratio(tvl: int, market_cap: int) -> int:
        # Raises DivisionByZeroError if market_cap == 0
        return (S(tvl) * 100 // S(market_cap)).value
"""

from __future__ import annotations

from pooltracker.errors import DivisionByZeroError, Uint256Overflow, UnderflowError

UINT256_MAX = 2**256 - 1


class SafeInt:
    """Integer with safe arithmetic operations.

    Wraps an integer and provides arithmetic operators that raise
    descriptive errors instead of producing invalid results:
    - Division by zero raises DivisionByZeroError
    - Negative results from subtraction raise UnderflowError
    - Values exceeding uint256 raise Uint256Overflow on to_uint256()

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _extract_value(other))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(other + self._value)

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            UnderflowError: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise UnderflowError(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __rsub__(self, other: int) -> SafeInt:
        result = other - self._value
        if result < 0:
            raise UnderflowError(f"Underflow: {other} - {self._value} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(other * self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division.

        Raises:
            DivisionByZeroError: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZeroError(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __rfloordiv__(self, other: int) -> SafeInt:
        if self._value == 0:
            raise DivisionByZeroError(f"Division by zero: {other} // 0")
        return SafeInt(other // self._value)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def __index__(self) -> int:
        return self._value

    # --- Named operations ---

    def min(self, other: SafeInt | int) -> SafeInt:
        """Return minimum of self and other."""
        return SafeInt(min(self._value, _extract_value(other)))

    def to_uint256(self) -> int:
        """Convert to int, validating uint256 bounds.

        Raises:
            Uint256Overflow: If value is negative or exceeds 2^256-1
        """
        if self._value < 0:
            raise Uint256Overflow(f"Negative value cannot be uint256: {self._value}")
        if self._value > UINT256_MAX:
            raise Uint256Overflow(f"Value exceeds uint256 max: {self._value}")
        return self._value


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
