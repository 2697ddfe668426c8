"""Tests for SafeInt safe arithmetic wrapper."""

import pytest

from pooltracker.errors import (
    DivisionByZeroError,
    PoolTrackerError,
    SafeIntError,
    Uint256Overflow,
    UnderflowError,
)
from pooltracker.safe_int import UINT256_MAX, S, SafeInt


class TestSafeIntConstruction:
    """Tests for SafeInt construction."""

    def test_from_int(self):
        assert SafeInt(42).value == 42

    def test_from_safeint(self):
        assert SafeInt(SafeInt(42)).value == 42

    def test_from_invalid_type_raises(self):
        """SafeInt rejects strings, floats and bools."""
        with pytest.raises(TypeError):
            SafeInt("42")  # type: ignore
        with pytest.raises(TypeError):
            SafeInt(3.14)  # type: ignore
        with pytest.raises(TypeError):
            SafeInt(True)

    def test_alias_s(self):
        assert S is SafeInt


class TestSafeIntArithmetic:
    """Tests for SafeInt arithmetic operations."""

    def test_add(self):
        assert (S(10) + 5).value == 15
        assert (5 + S(10)).value == 15

    def test_sub_underflow_raises(self):
        assert (S(10) - 3).value == 7
        with pytest.raises(UnderflowError):
            S(3) - 10

    def test_rsub_underflow_raises(self):
        with pytest.raises(UnderflowError):
            3 - S(10)

    def test_mul_large(self):
        assert (S(10**40) * 10**40).value == 10**80

    def test_floordiv(self):
        assert (S(100) // 7).value == 14

    def test_floordiv_by_zero_raises(self):
        with pytest.raises(DivisionByZeroError):
            S(100) // 0
        with pytest.raises(DivisionByZeroError):
            100 // S(0)

    def test_chained_fixed_point(self):
        """price * quote * amount // unit, as valuation computes it."""
        assert (S(5 * 10**8) * 2000 * 3000 // 1000).value == 3 * 10**12


class TestSafeIntComparison:
    def test_comparisons(self):
        assert S(5) == 5
        assert S(5) == S(5)
        assert S(4) < 5
        assert S(5) <= S(5)
        assert S(6) > 5
        assert S(6) >= 6

    def test_min(self):
        assert S(3).min(7).value == 3
        assert S(9).min(S(7)).value == 7


class TestSafeIntConversion:
    def test_int_and_index(self):
        assert int(S(7)) == 7
        assert [0, 1, 2][S(1)] == 1

    def test_bool(self):
        assert S(1)
        assert not S(0)

    def test_str_repr(self):
        assert str(S(12)) == "12"
        assert repr(S(12)) == "SafeInt(12)"


class TestSafeIntUint256:
    def test_to_uint256_valid(self):
        assert S(UINT256_MAX).to_uint256() == UINT256_MAX

    def test_to_uint256_overflow_raises(self):
        with pytest.raises(Uint256Overflow):
            (S(UINT256_MAX) + 1).to_uint256()


class TestSafeIntExceptionHierarchy:
    """SafeInt errors are arithmetic errors and pooltracker errors."""

    @pytest.mark.parametrize("error", [DivisionByZeroError, UnderflowError, Uint256Overflow])
    def test_hierarchy(self, error):
        assert issubclass(error, SafeIntError)
        assert issubclass(error, ArithmeticError)
        assert issubclass(error, PoolTrackerError)
