"""Constant product AMM math.

Pools hold two reserves x and y and keep x * y = k non-decreasing across
swaps. A swap fee, when configured, is taken from the input amount before
the formula is applied and stays in the pool.
"""

from __future__ import annotations

from math import isqrt

from pooltracker.amm.base import AMM
from pooltracker.constants import BPS_DENOMINATOR
from pooltracker.errors import InsufficientLiquidityError, InvalidAmountError
from pooltracker.safe_int import S


class ConstantProduct(AMM):
    """Constant product swap and liquidity math on integer amounts.

    Formula: amount_out = (in_after_fee * res_out) / (res_in + in_after_fee)

    where in_after_fee = amount_in * (10000 - fee_bps) / 10000. Rounding is
    always down on the output side, so res_in' * res_out' >= res_in * res_out.
    """

    def amount_after_fee(self, amount_in: int, fee_bps: int = 0) -> int:
        """Input amount that enters the formula once the fee is removed."""
        if fee_bps == 0:
            return amount_in
        return (S(amount_in) * (BPS_DENOMINATOR - fee_bps) // BPS_DENOMINATOR).value

    def get_amount_out(
        self,
        amount_in: int,
        reserve_in: int,
        reserve_out: int,
        fee_bps: int = 0,
    ) -> int:
        """Calculate output amount using constant product formula.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pool
            reserve_out: Reserve of output token in pool
            fee_bps: Fee in basis points taken from the input (default 0)

        Returns:
            Output token amount (0 for zero input or empty reserves)

        Raises:
            InvalidAmountError: If amount_in is negative
        """
        if amount_in < 0:
            raise InvalidAmountError(f"Swap amount cannot be negative: {amount_in}")
        if amount_in == 0:
            return 0
        if reserve_in <= 0 or reserve_out <= 0:
            return 0

        in_after_fee = S(self.amount_after_fee(amount_in, fee_bps))
        numerator = in_after_fee * reserve_out
        denominator = S(reserve_in) + in_after_fee

        return (numerator // denominator).value

    def get_amount_in(
        self,
        amount_out: int,
        reserve_in: int,
        reserve_out: int,
        fee_bps: int = 0,
    ) -> int:
        """Calculate required input for a desired output (rounded up).

        Formula: amount_in = res_in * out * 10000 / ((res_out - out) * (10000 - fee)) + 1

        Raises:
            InsufficientLiquidityError: If amount_out is not below reserve_out
        """
        if amount_out <= 0:
            return 0
        if amount_out >= reserve_out:
            raise InsufficientLiquidityError(
                f"Cannot take {amount_out} out of a reserve of {reserve_out}"
            )

        numerator = S(reserve_in) * amount_out * BPS_DENOMINATOR
        denominator = (S(reserve_out) - amount_out) * (BPS_DENOMINATOR - fee_bps)

        return ((numerator // denominator) + 1).value

    def initial_shares(self, amount_one: int, amount_two: int) -> int:
        """LP shares minted for the first deposit: floor(sqrt(x * y))."""
        return isqrt(amount_one * amount_two)

    def optimal_deposit(
        self,
        amount_one_desired: int,
        amount_two_desired: int,
        reserve_one: int,
        reserve_two: int,
    ) -> tuple[int, int]:
        """Largest deposit at the pool ratio that fits within the desired amounts.

        Returns:
            Tuple of (amount_one_used, amount_two_used)
        """
        amount_two_optimal = (S(amount_one_desired) * reserve_two // reserve_one).value
        if amount_two_optimal <= amount_two_desired:
            return amount_one_desired, amount_two_optimal

        amount_one_optimal = (S(amount_two_desired) * reserve_one // reserve_two).value
        return amount_one_optimal, amount_two_desired

    def shares_for_deposit(
        self,
        amount_one: int,
        amount_two: int,
        reserve_one: int,
        reserve_two: int,
        total_shares: int,
    ) -> int:
        """LP shares minted for a proportional deposit (rounded down)."""
        by_one = S(amount_one) * total_shares // reserve_one
        by_two = S(amount_two) * total_shares // reserve_two
        return by_one.min(by_two).value

    def amounts_for_shares(
        self,
        shares: int,
        reserve_one: int,
        reserve_two: int,
        total_shares: int,
    ) -> tuple[int, int]:
        """Reserve amounts paid out for burning shares (rounded down)."""
        amount_one = S(shares) * reserve_one // total_shares
        amount_two = S(shares) * reserve_two // total_shares
        return amount_one.value, amount_two.value


# Singleton instance
constant_product = ConstantProduct()


__all__ = [
    "ConstantProduct",
    "constant_product",
]
