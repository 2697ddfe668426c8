"""On-registry metrics: valuation, market cap, TVL and ROI.

Every query is a pure read over the registry, pool snapshots, asset ledgers
and price feeds. Values are fixed-point integers: a token amount in base
units times a feed price scaled by the feed's decimals.

Valuation uses the registry's routing table, single hop only:
1. If the token has a routing entry, value = price * amount
2. Else, if the token has a direct pool with a routing token, quote
   `quote_unit` of the token into that routing token and value the amount
   at that rate
3. Else the value is 0 (no path)

At each stage the first matching routing entry in insertion order wins.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from pooltracker.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from pooltracker.constants import PERCENT
from pooltracker.errors import DivisionByZeroError, NoValuationPathError, UnknownFeedError
from pooltracker.metrics.valuation import Valuation, ValuationSource
from pooltracker.models.types import normalize_address
from pooltracker.safe_int import S

if TYPE_CHECKING:
    from pooltracker.clock import Clock
    from pooltracker.ledger import TokenDirectory
    from pooltracker.oracles import FeedDirectory
    from pooltracker.pools import PoolRegistry, PoolSnapshot

logger = structlog.get_logger()


@dataclass(frozen=True)
class PoolReport:
    """All pair metrics of one pool.

    Ratio and ROI fields are None when their denominator is zero (no market
    cap, no TVL, or a pool younger than one day).
    """

    pool: str
    asset_one: str
    asset_two: str
    reserve_one: int
    reserve_two: int
    yield_amount: int
    pair_market_cap: int
    pair_tvl: int
    pair_tvl_ratio: int | None
    total_roi: int | None
    daily_rate: int | None
    daily_roi: int | None


@dataclass(frozen=True)
class PairState:
    """One consistent reading of a pool, oriented as (token_a, token_b)."""

    token_a: str
    token_b: str
    snapshot: PoolSnapshot
    held_a: int
    held_b: int
    deployed_at: int


class PoolMetrics:
    """Read-only metrics over a pool registry.

    Args:
        registry: Registry providing pools and routing addresses
        ledgers: Asset ledgers (total supply and pool balances)
        feeds: Price feeds referenced by routing entries
        clock: Time source for pool age
        base_price_feed: Feed pricing the unit pool yield is expressed in
        config: Engine configuration
    """

    def __init__(
        self,
        registry: PoolRegistry,
        ledgers: TokenDirectory,
        feeds: FeedDirectory,
        clock: Clock,
        base_price_feed: str | None = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> None:
        self.registry = registry
        self.base_price_feed = normalize_address(base_price_feed) if base_price_feed else None
        self.config = config
        self._ledgers = ledgers
        self._feeds = feeds
        self._clock = clock

    def set_base_price_feed(self, price_feed: str) -> None:
        self.base_price_feed = normalize_address(price_feed, validate=True)

    def _base_price(self) -> int:
        if self.base_price_feed is None:
            raise UnknownFeedError("No base price feed configured")
        return self._feeds.price(self.base_price_feed)

    # --- Valuation ---

    def valuate(self, token: str, amount: int) -> Valuation:
        """Value an amount of a token, reporting how the value was found."""
        token_norm = normalize_address(token)
        entries = self.registry.all_routing_addresses()

        for entry in entries:
            if entry.token_address == token_norm:
                price = self._feeds.price(entry.price_feed)
                return Valuation(
                    token=token_norm,
                    amount=amount,
                    value=(S(price) * amount).to_uint256(),
                    source=ValuationSource.ROUTING,
                    routing_token=entry.token_address,
                    price_feed=entry.price_feed,
                )

        for entry in entries:
            pool = self.registry.pair_to_pool(token_norm, entry.token_address)
            if pool is not None:
                unit = self.config.quote_unit
                quote = pool.get_swap_quantity(token_norm, unit)
                price = self._feeds.price(entry.price_feed)
                return Valuation(
                    token=token_norm,
                    amount=amount,
                    value=(S(price) * quote * amount // unit).to_uint256(),
                    source=ValuationSource.POOL,
                    routing_token=entry.token_address,
                    price_feed=entry.price_feed,
                )

        logger.debug("valuation_no_path", token=token_norm, routing_entries=len(entries))
        return Valuation.no_path(token_norm, amount)

    def usd_value(self, token: str, amount: int) -> int:
        """Value of amount of token; 0 when there is no valuation path."""
        return self.valuate(token, amount).value

    def require_usd_value(self, token: str, amount: int) -> int:
        """Like usd_value, but raises NoValuationPathError when there is no path."""
        valuation = self.valuate(token, amount)
        if not valuation.has_path:
            raise NoValuationPathError(f"No routing entry or direct pool values {token}")
        return valuation.value

    # --- Market cap / TVL ---

    def market_cap(self, token: str) -> int:
        return self.usd_value(token, self._ledgers.get(token).total_supply())

    def pair_market_cap(self, token_a: str, token_b: str) -> int:
        return self.market_cap(token_a) + self.market_cap(token_b)

    def tvl(self, token: str) -> int:
        """Value of the token's balance across every pool that holds it."""
        token_norm = normalize_address(token)
        ledger = self._ledgers.get(token_norm)
        locked = 0
        for counter_asset in self.registry.all_pool_pairs(token_norm):
            pool = self.registry.require_pool(token_norm, counter_asset)
            locked += ledger.balance_of(pool.address)
        return self.usd_value(token_norm, locked)

    def pair_state(self, token_a: str, token_b: str) -> PairState:
        """Read the pool of (token_a, token_b) at one instant, under its lock."""
        pool = self.registry.require_pool(token_a, token_b)
        with pool.lock:
            snapshot = pool.snapshot()
            held_one, held_two = pool.held_balances()
            deployed_at = pool.initial_liquidity_provided_time(pool.owner)
        if normalize_address(token_a) == snapshot.asset_one:
            held_a, held_b = held_one, held_two
        else:
            held_a, held_b = held_two, held_one
        return PairState(
            token_a=normalize_address(token_a),
            token_b=normalize_address(token_b),
            snapshot=snapshot,
            held_a=held_a,
            held_b=held_b,
            deployed_at=deployed_at,
        )

    def pair_tvl(self, token_a: str, token_b: str) -> int:
        return self._pair_tvl(self.pair_state(token_a, token_b))

    def _pair_tvl(self, state: PairState) -> int:
        return self.usd_value(state.token_a, state.held_a) + self.usd_value(
            state.token_b, state.held_b
        )

    def tvl_ratio(self, token: str) -> int:
        """TVL as a percentage of market cap.

        Raises:
            DivisionByZeroError: If the market cap is 0
        """
        market_cap = self.market_cap(token)
        if market_cap == 0:
            raise DivisionByZeroError(f"Market cap of {token} is 0")
        return (S(self.tvl(token)) * PERCENT // market_cap).value

    def pair_tvl_ratio(self, token_a: str, token_b: str) -> int:
        """Pair TVL as a percentage of the pair market cap.

        Raises:
            DivisionByZeroError: If the pair market cap is 0
        """
        state = self.pair_state(token_a, token_b)
        return self._pair_tvl_ratio(state, self._pair_tvl(state))

    def _pair_tvl_ratio(self, state: PairState, pair_tvl: int) -> int:
        pair_market_cap = self.pair_market_cap(state.token_a, state.token_b)
        if pair_market_cap == 0:
            raise DivisionByZeroError(f"Pair market cap of {state.token_a}/{state.token_b} is 0")
        return (S(pair_tvl) * PERCENT // pair_market_cap).value

    # --- Yield / ROI ---

    def total_roi(self, token_a: str, token_b: str) -> int:
        """Accumulated yield, valued with the base feed, as a percentage of pair TVL.

        Raises:
            DivisionByZeroError: If the pair TVL is 0
        """
        state = self.pair_state(token_a, token_b)
        return self._total_roi(state, self._pair_tvl(state))

    def _total_roi(self, state: PairState, pair_tvl: int) -> int:
        profit = S(state.snapshot.yield_amount) * self._base_price()
        if pair_tvl == 0:
            raise DivisionByZeroError(f"Pair TVL of {state.token_a}/{state.token_b} is 0")
        return (profit * PERCENT // pair_tvl).value

    def days_since_deployed(self, token_a: str, token_b: str) -> int:
        return self._days_since_deployed(self.pair_state(token_a, token_b))

    def _days_since_deployed(self, state: PairState) -> int:
        elapsed = max(self._clock.now() - state.deployed_at, 0)
        return elapsed // self.config.seconds_per_day

    def daily_rate(self, token_a: str, token_b: str) -> int:
        """Yield per whole day since the pool was seeded.

        Raises:
            DivisionByZeroError: If the pool is less than one day old
        """
        return self._daily_rate(self.pair_state(token_a, token_b))

    def _daily_rate(self, state: PairState) -> int:
        days = self._days_since_deployed(state)
        if days == 0:
            raise DivisionByZeroError(f"Pool {state.snapshot.address} is less than one day old")
        return (S(state.snapshot.yield_amount) // days).value

    def daily_roi(self, token_a: str, token_b: str) -> int:
        """Daily yield valued with the base feed, relative to pair TVL.

        Scaled by config.roi_scaling_factor.

        Raises:
            DivisionByZeroError: If the pool is younger than a day or pair TVL is 0
        """
        state = self.pair_state(token_a, token_b)
        return self._daily_roi(state, self._pair_tvl(state))

    def _daily_roi(self, state: PairState, pair_tvl: int) -> int:
        daily_rate = self._daily_rate(state)
        if pair_tvl == 0:
            raise DivisionByZeroError(f"Pair TVL of {state.token_a}/{state.token_b} is 0")
        numerator = S(self._base_price()) * daily_rate * self.config.roi_scaling_factor
        return (numerator // pair_tvl).to_uint256()

    def pool_report(self, token_a: str, token_b: str) -> PoolReport:
        """Every pair metric for the pool of (token_a, token_b).

        All metrics derive from one PairState, so reserves, balances and
        yield come from the same instant.
        """
        state = self.pair_state(token_a, token_b)
        snapshot = state.snapshot
        pair_tvl = self._pair_tvl(state)

        def optional(metric: str, compute: Callable[[], int]) -> int | None:
            try:
                return compute()
            except DivisionByZeroError as err:
                logger.debug(
                    "metric_undefined", pool=snapshot.address, metric=metric, reason=str(err)
                )
                return None

        return PoolReport(
            pool=snapshot.address,
            asset_one=snapshot.asset_one,
            asset_two=snapshot.asset_two,
            reserve_one=snapshot.reserve_one,
            reserve_two=snapshot.reserve_two,
            yield_amount=snapshot.yield_amount,
            pair_market_cap=self.pair_market_cap(token_a, token_b),
            pair_tvl=pair_tvl,
            pair_tvl_ratio=optional(
                "pair_tvl_ratio", lambda: self._pair_tvl_ratio(state, pair_tvl)
            ),
            total_roi=optional("total_roi", lambda: self._total_roi(state, pair_tvl)),
            daily_rate=optional("daily_rate", lambda: self._daily_rate(state)),
            daily_roi=optional("daily_roi", lambda: self._daily_roi(state, pair_tvl)),
        )
