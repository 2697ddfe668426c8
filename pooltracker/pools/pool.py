"""Two-asset constant product liquidity pool.

A LiquidityPool holds reserves of two assets, executes swaps between them,
tracks liquidity-provider shares and accrues trading fees as yield.

All state changes run under the pool's lock so concurrent writers are
serialized; readers that need a consistent view take a PoolSnapshot.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from pooltracker.amm.base import LiquidityChange, SwapResult
from pooltracker.amm.constant_product import ConstantProduct, constant_product
from pooltracker.errors import (
    InsufficientLiquidityError,
    InsufficientSharesError,
    InvalidAmountError,
    NotOwnerError,
    PoolAlreadyInitializedError,
    SlippageExceededError,
    TransferFailure,
    UnknownAssetError,
)
from pooltracker.ledger import ensure_pullable
from pooltracker.models.types import normalize_address
from pooltracker.safe_int import S

if TYPE_CHECKING:
    from pooltracker.clock import Clock
    from pooltracker.ledger import TokenDirectory

logger = structlog.get_logger()


class PoolStatus(str, Enum):
    """Lifecycle state of a pool."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


@dataclass(frozen=True)
class PoolSnapshot:
    """Consistent copy of a pool's state at one instant."""

    address: str
    asset_one: str
    asset_two: str
    owner: str
    reserve_one: int
    reserve_two: int
    total_shares: int
    fee_bps: int
    yield_amount: int
    status: PoolStatus

    def reserve_of(self, asset: str) -> int:
        asset_norm = normalize_address(asset)
        if asset_norm == self.asset_one:
            return self.reserve_one
        if asset_norm == self.asset_two:
            return self.reserve_two
        raise UnknownAssetError(f"Asset {asset} not in pool {self.address}")


class LiquidityPool:
    """Constant product pool over (asset_one, asset_two).

    Asset order is fixed at creation. The registry that creates the pool is
    its owner and performs the initial deposit.

    Args:
        address: Pool identity (also its account on the asset ledgers)
        asset_one: First asset address
        asset_two: Second asset address
        owner: Address allowed to seed the pool (the registry)
        ledgers: Directory resolving asset addresses to ledgers
        clock: Time source for deposit timestamps
        fee_bps: Swap fee in basis points (default 0)
        amm: Swap math implementation
    """

    def __init__(
        self,
        address: str,
        asset_one: str,
        asset_two: str,
        owner: str,
        ledgers: TokenDirectory,
        clock: Clock,
        fee_bps: int = 0,
        amm: ConstantProduct = constant_product,
    ) -> None:
        self.address = normalize_address(address)
        self.asset_one_address = normalize_address(asset_one)
        self.asset_two_address = normalize_address(asset_two)
        self.owner = normalize_address(owner)
        self.fee_bps = fee_bps
        self._ledgers = ledgers
        self._clock = clock
        self._amm = amm
        self._reserve_one = 0
        self._reserve_two = 0
        self._total_shares = 0
        self._shares: dict[str, int] = {}
        self._initial_liquidity_provided_time: dict[str, int] = {}
        # Accumulated fees, in asset one units
        self._yield = 0
        self._status = PoolStatus.UNINITIALIZED
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return (
            f"LiquidityPool({self.address}, {self.asset_one_address}/{self.asset_two_address}, "
            f"reserves=({self._reserve_one}, {self._reserve_two}))"
        )

    # --- Read accessors ---

    @property
    def reserve_one(self) -> int:
        return self._reserve_one

    @property
    def reserve_two(self) -> int:
        return self._reserve_two

    @property
    def total_shares(self) -> int:
        return self._total_shares

    @property
    def status(self) -> PoolStatus:
        return self._status

    @property
    def lock(self) -> threading.RLock:
        """The pool lock. Hold it to read several values from one instant."""
        return self._lock

    @property
    def assets(self) -> tuple[str, str]:
        return self.asset_one_address, self.asset_two_address

    def has_asset(self, asset: str) -> bool:
        return normalize_address(asset) in self.assets

    def lp_balance(self, provider: str) -> int:
        return self._shares.get(normalize_address(provider), 0)

    def initial_liquidity_provided_time(self, provider: str) -> int:
        """Timestamp of a provider's first deposit, 0 if it never deposited."""
        return self._initial_liquidity_provided_time.get(normalize_address(provider), 0)

    def yield_(self) -> int:
        """Trading fees accumulated since inception, in asset one units."""
        return self._yield

    def snapshot(self) -> PoolSnapshot:
        with self._lock:
            return PoolSnapshot(
                address=self.address,
                asset_one=self.asset_one_address,
                asset_two=self.asset_two_address,
                owner=self.owner,
                reserve_one=self._reserve_one,
                reserve_two=self._reserve_two,
                total_shares=self._total_shares,
                fee_bps=self.fee_bps,
                yield_amount=self._yield,
                status=self._status,
            )

    def held_balances(self) -> tuple[int, int]:
        """Balances the asset ledgers report for the pool account.

        Read under the pool lock, so both values come from the same instant
        between two pool operations.
        """
        with self._lock:
            return (
                self._ledgers.get(self.asset_one_address).balance_of(self.address),
                self._ledgers.get(self.asset_two_address).balance_of(self.address),
            )

    # --- Quotes ---

    def _orient(self, input_asset: str) -> tuple[int, int, bool]:
        """Get (reserve_in, reserve_out, input_is_asset_one) for an input asset."""
        asset_norm = normalize_address(input_asset)
        if asset_norm == self.asset_one_address:
            return self._reserve_one, self._reserve_two, True
        if asset_norm == self.asset_two_address:
            return self._reserve_two, self._reserve_one, False
        raise UnknownAssetError(f"Asset {input_asset} not in pool {self.address}")

    def get_token_out(self, input_asset: str) -> str:
        _reserve_in, _reserve_out, is_one = self._orient(input_asset)
        return self.asset_two_address if is_one else self.asset_one_address

    def get_swap_quantity(self, input_asset: str, input_amount: int) -> int:
        """Output amount a swap of input_amount would currently return.

        Pure: does not change the pool.

        Raises:
            UnknownAssetError: If input_asset is not one of the pool's assets
            InvalidAmountError: If input_amount is negative
        """
        with self._lock:
            reserve_in, reserve_out, _is_one = self._orient(input_asset)
            return self._amm.get_amount_out(input_amount, reserve_in, reserve_out, self.fee_bps)

    def get_input_quantity(self, input_asset: str, output_amount: int) -> int:
        """Input amount of input_asset required to receive output_amount.

        Raises:
            UnknownAssetError: If input_asset is not one of the pool's assets
            InsufficientLiquidityError: If output_amount would drain the reserve
        """
        with self._lock:
            reserve_in, reserve_out, _is_one = self._orient(input_asset)
            return self._amm.get_amount_in(output_amount, reserve_in, reserve_out, self.fee_bps)

    # --- Mutations ---

    def initialize(
        self,
        provider: str,
        amount_one: int,
        amount_two: int,
        beneficiary: str | None = None,
    ) -> LiquidityChange:
        """Record the initial deposit, which the owner has already moved into the pool.

        Args:
            provider: Account that funded the pool; must be the owner
            amount_one: Initial reserve of asset one
            amount_two: Initial reserve of asset two
            beneficiary: Account credited with the LP shares (default: provider)

        Raises:
            NotOwnerError: If provider is not the pool owner
            PoolAlreadyInitializedError: If the pool already holds liquidity
            InvalidAmountError: If either amount is not positive
            TransferFailure: If the pool does not actually hold the amounts
        """
        provider_norm = normalize_address(provider)
        if provider_norm != self.owner:
            raise NotOwnerError(f"Only the pool owner {self.owner} can seed pool {self.address}")
        if amount_one <= 0 or amount_two <= 0:
            raise InvalidAmountError(
                f"Initial deposits must be positive: ({amount_one}, {amount_two})"
            )

        with self._lock:
            if self._status is not PoolStatus.UNINITIALIZED:
                raise PoolAlreadyInitializedError(f"Pool {self.address} is already initialized")

            held_one = self._ledgers.get(self.asset_one_address).balance_of(self.address)
            held_two = self._ledgers.get(self.asset_two_address).balance_of(self.address)
            if held_one < amount_one or held_two < amount_two:
                raise TransferFailure(
                    f"Pool {self.address} holds ({held_one}, {held_two}), "
                    f"expected ({amount_one}, {amount_two})"
                )

            shares = self._amm.initial_shares(amount_one, amount_two)
            holder = normalize_address(beneficiary) if beneficiary else provider_norm
            now = self._clock.now()

            self._reserve_one = amount_one
            self._reserve_two = amount_two
            self._total_shares = shares
            self._shares[holder] = shares
            self._initial_liquidity_provided_time.setdefault(provider_norm, now)
            self._initial_liquidity_provided_time.setdefault(holder, now)
            self._status = PoolStatus.ACTIVE

        logger.info(
            "pool_initialized",
            pool=self.address,
            reserve_one=amount_one,
            reserve_two=amount_two,
            shares=shares,
            provider=holder,
        )
        return LiquidityChange(
            provider=holder,
            pool_address=self.address,
            amount_one=amount_one,
            amount_two=amount_two,
            shares=shares,
        )

    def _require_active(self) -> None:
        if self._status is not PoolStatus.ACTIVE:
            raise InsufficientLiquidityError(f"Pool {self.address} has no liquidity")

    def swap(
        self,
        trader: str,
        input_asset: str,
        input_amount: int,
        min_output: int = 0,
    ) -> SwapResult:
        """Swap input_amount of input_asset for the other asset.

        The trader must have approved the pool for input_amount on the input
        asset's ledger.

        Args:
            trader: Account paying the input and receiving the output
            input_asset: Asset sold to the pool
            input_amount: Amount sold
            min_output: Minimum acceptable output (slippage guard)

        Raises:
            UnknownAssetError: If input_asset is not in the pool
            InvalidAmountError: If input_amount is not positive
            InsufficientLiquidityError: If the swap would return nothing
            SlippageExceededError: If the output is below min_output
            InsufficientAllowanceError, TransferFailure: If the input cannot be pulled
        """
        if input_amount <= 0:
            raise InvalidAmountError(f"Swap amount must be positive: {input_amount}")
        trader_norm = normalize_address(trader)

        with self._lock:
            self._require_active()
            reserve_in, reserve_out, is_one = self._orient(input_asset)
            token_in = self.asset_one_address if is_one else self.asset_two_address
            token_out = self.asset_two_address if is_one else self.asset_one_address

            amount_out = self._amm.get_amount_out(
                input_amount, reserve_in, reserve_out, self.fee_bps
            )
            if amount_out <= 0 or amount_out >= reserve_out:
                raise InsufficientLiquidityError(
                    f"Swap of {input_amount} returns {amount_out} from a reserve of {reserve_out}"
                )
            if amount_out < min_output:
                raise SlippageExceededError(
                    f"Swap output {amount_out} is below the minimum {min_output}"
                )

            ledger_in = self._ledgers.get(token_in)
            ledger_out = self._ledgers.get(token_out)
            ledger_in.transfer_from(self.address, trader_norm, self.address, input_amount)
            try:
                ledger_out.transfer(self.address, trader_norm, amount_out)
            except Exception:
                # Return the input so the ledgers match the unchanged reserves
                ledger_in.transfer(self.address, trader_norm, input_amount)
                raise

            fee_amount = input_amount - self._amm.amount_after_fee(input_amount, self.fee_bps)
            if fee_amount:
                if is_one:
                    self._yield += fee_amount
                else:
                    self._yield += (S(fee_amount) * reserve_out // reserve_in).value

            if is_one:
                self._reserve_one = reserve_in + input_amount
                self._reserve_two = reserve_out - amount_out
            else:
                self._reserve_two = reserve_in + input_amount
                self._reserve_one = reserve_out - amount_out

        logger.info(
            "swap_executed",
            pool=self.address,
            trader=trader_norm,
            token_in=token_in,
            amount_in=input_amount,
            amount_out=amount_out,
            fee_amount=fee_amount,
        )
        return SwapResult(
            amount_in=input_amount,
            amount_out=amount_out,
            pool_address=self.address,
            token_in=token_in,
            token_out=token_out,
            fee_amount=fee_amount,
        )

    def add_liquidity(
        self,
        provider: str,
        amount_one_desired: int,
        amount_two_desired: int,
        min_shares: int = 0,
    ) -> LiquidityChange:
        """Deposit both assets at the current pool ratio and mint LP shares.

        Only the proportional part of the desired amounts is pulled. The
        provider must have approved the pool on both ledgers.

        Raises:
            InvalidAmountError: If either desired amount is not positive
            InsufficientLiquidityError: If the deposit would mint no shares
            SlippageExceededError: If fewer than min_shares would be minted
            InsufficientAllowanceError, TransferFailure: If funds cannot be pulled
        """
        if amount_one_desired <= 0 or amount_two_desired <= 0:
            raise InvalidAmountError(
                f"Deposits must be positive: ({amount_one_desired}, {amount_two_desired})"
            )
        provider_norm = normalize_address(provider)

        with self._lock:
            self._require_active()
            amount_one, amount_two = self._amm.optimal_deposit(
                amount_one_desired, amount_two_desired, self._reserve_one, self._reserve_two
            )
            shares = self._amm.shares_for_deposit(
                amount_one, amount_two, self._reserve_one, self._reserve_two, self._total_shares
            )
            if shares <= 0:
                raise InsufficientLiquidityError(
                    f"Deposit of ({amount_one}, {amount_two}) mints no shares"
                )
            if shares < min_shares:
                raise SlippageExceededError(f"Deposit mints {shares} shares, minimum {min_shares}")

            ledger_one = self._ledgers.get(self.asset_one_address)
            ledger_two = self._ledgers.get(self.asset_two_address)
            ensure_pullable(ledger_one, self.address, provider_norm, amount_one)
            ensure_pullable(ledger_two, self.address, provider_norm, amount_two)

            ledger_one.transfer_from(self.address, provider_norm, self.address, amount_one)
            try:
                ledger_two.transfer_from(self.address, provider_norm, self.address, amount_two)
            except Exception:
                ledger_one.transfer(self.address, provider_norm, amount_one)
                raise

            self._reserve_one += amount_one
            self._reserve_two += amount_two
            self._total_shares += shares
            self._shares[provider_norm] = self._shares.get(provider_norm, 0) + shares
            self._initial_liquidity_provided_time.setdefault(provider_norm, self._clock.now())

        logger.info(
            "liquidity_added",
            pool=self.address,
            provider=provider_norm,
            amount_one=amount_one,
            amount_two=amount_two,
            shares=shares,
        )
        return LiquidityChange(
            provider=provider_norm,
            pool_address=self.address,
            amount_one=amount_one,
            amount_two=amount_two,
            shares=shares,
        )

    def remove_liquidity(
        self,
        provider: str,
        shares: int,
        min_amount_one: int = 0,
        min_amount_two: int = 0,
    ) -> LiquidityChange:
        """Burn LP shares and pay out the proportional reserves.

        The last outstanding shares cannot be burned; a pool never returns
        to an empty state.

        Raises:
            InvalidAmountError: If shares is not positive
            InsufficientSharesError: If provider owns fewer shares
            InsufficientLiquidityError: If the withdrawal would empty the pool
            SlippageExceededError: If a payout is below its minimum
        """
        if shares <= 0:
            raise InvalidAmountError(f"Shares to burn must be positive: {shares}")
        provider_norm = normalize_address(provider)

        with self._lock:
            self._require_active()
            owned = self._shares.get(provider_norm, 0)
            if owned < shares:
                raise InsufficientSharesError(
                    f"{provider_norm} owns {owned} shares of {self.address}, cannot burn {shares}"
                )
            if shares >= self._total_shares:
                raise InsufficientLiquidityError(
                    f"Cannot withdraw the entire liquidity of pool {self.address}"
                )

            amount_one, amount_two = self._amm.amounts_for_shares(
                shares, self._reserve_one, self._reserve_two, self._total_shares
            )
            if amount_one < min_amount_one or amount_two < min_amount_two:
                raise SlippageExceededError(
                    f"Withdrawal pays ({amount_one}, {amount_two}), "
                    f"minimum ({min_amount_one}, {min_amount_two})"
                )
            if amount_one >= self._reserve_one or amount_two >= self._reserve_two:
                raise InsufficientLiquidityError(
                    f"Withdrawal of {shares} shares would drain pool {self.address}"
                )

            ledger_one = self._ledgers.get(self.asset_one_address)
            ledger_two = self._ledgers.get(self.asset_two_address)
            ledger_one.transfer(self.address, provider_norm, amount_one)
            try:
                ledger_two.transfer(self.address, provider_norm, amount_two)
            except Exception:
                ledger_one.transfer(provider_norm, self.address, amount_one)
                raise

            self._reserve_one -= amount_one
            self._reserve_two -= amount_two
            self._total_shares -= shares
            self._shares[provider_norm] = owned - shares

        logger.info(
            "liquidity_removed",
            pool=self.address,
            provider=provider_norm,
            amount_one=amount_one,
            amount_two=amount_two,
            shares=shares,
        )
        return LiquidityChange(
            provider=provider_norm,
            pool_address=self.address,
            amount_one=amount_one,
            amount_two=amount_two,
            shares=shares,
        )
