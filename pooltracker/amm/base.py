"""Base classes for AMM implementations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SwapResult:
    """Result of executing (or simulating) a swap through a pool."""

    amount_in: int
    amount_out: int
    pool_address: str
    token_in: str
    token_out: str
    # Portion of amount_in kept by the pool as fee
    fee_amount: int = 0


@dataclass(frozen=True)
class LiquidityChange:
    """Result of adding or removing liquidity."""

    provider: str
    pool_address: str
    amount_one: int
    amount_two: int
    shares: int


class AMM(ABC):
    """Abstract base class for AMM math implementations.

    Implementations may extend the base method signatures with additional
    optional parameters, e.g. a fee in basis points.
    """

    @abstractmethod
    def get_amount_out(
        self,
        amount_in: int,
        reserve_in: int,
        reserve_out: int,
    ) -> int:
        """Calculate output amount for a given input.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pool
            reserve_out: Reserve of output token in pool

        Returns:
            Output token amount
        """
        ...
