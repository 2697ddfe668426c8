"""Pool registry: one liquidity pool per unordered asset pair.

The registry creates pools on behalf of callers, indexes them by pair, by
asset and by creator, and keeps the routing table of (token, price feed)
pairs that the metrics engine uses as valuation anchors.

Pairs are stored under a canonical (sorted) key, so lookups are symmetric:
pair_to_pool(a, b) is pair_to_pool(b, a).
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import structlog

from pooltracker.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from pooltracker.errors import (
    DuplicatePairError,
    IndexOutOfRangeError,
    InvalidAmountError,
    InvalidPairError,
    NotOwnerError,
    PoolNotFoundError,
    UnknownPoolError,
)
from pooltracker.ledger import ensure_pullable
from pooltracker.models.types import address_bytes, derive_address, normalize_address
from pooltracker.pools.events import PoolCreated, RegistryEvent, RoutingAddressAdded
from pooltracker.pools.pool import LiquidityPool

if TYPE_CHECKING:
    from pooltracker.clock import Clock
    from pooltracker.ledger import TokenDirectory

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class RoutingEntry:
    """A routing token and the price feed that values it."""

    token_address: str
    price_feed: str


def pair_key(token_a: str, token_b: str) -> tuple[str, str]:
    """Canonical key for an unordered pair (normalized, sorted)."""
    token_a_norm = normalize_address(token_a)
    token_b_norm = normalize_address(token_b)
    return (min(token_a_norm, token_b_norm), max(token_a_norm, token_b_norm))


def _at(sequence: list[T], index: int, what: str) -> T:
    if index < 0 or index >= len(sequence):
        raise IndexOutOfRangeError(f"{what} index {index} out of range (length {len(sequence)})")
    return sequence[index]


class PoolRegistry:
    """Registry of liquidity pools and routing addresses.

    Args:
        owner: Administrative owner, the only account allowed to add
            routing addresses
        ledgers: Directory resolving asset addresses to ledgers
        clock: Time source handed to created pools
        config: Engine configuration (swap fee for new pools)
        address: Registry account on the ledgers. Derived from the owner if
            not given.
    """

    def __init__(
        self,
        owner: str,
        ledgers: TokenDirectory,
        clock: Clock,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        address: str | None = None,
    ) -> None:
        self.owner = normalize_address(owner, validate=True)
        self.address = (
            normalize_address(address, validate=True)
            if address is not None
            else derive_address(["string", "address"], ["PoolTracker", address_bytes(self.owner)])
        )
        self.config = config
        self._ledgers = ledgers
        self._clock = clock
        self._pools: dict[tuple[str, str], LiquidityPool] = {}
        self._pools_by_address: dict[str, LiquidityPool] = {}
        self._pool_pairs: dict[str, list[str]] = {}
        self._tokens: list[str] = []
        self._token_set: set[str] = set()
        self._pool_owner: dict[str, list[str]] = {}
        self._routing_addresses: list[RoutingEntry] = []
        self._events: list[RegistryEvent] = []
        self._nonce = 0
        self._lock = threading.RLock()

    # --- Mutations ---

    def create_pool(
        self,
        caller: str,
        asset_a: str,
        asset_b: str,
        amount_a: int,
        amount_b: int,
    ) -> LiquidityPool:
        """Create and seed the pool for (asset_a, asset_b).

        The caller must have approved the registry for amount_a and amount_b
        on the two asset ledgers. Either both amounts move and the pool is
        registered, or nothing changes.

        Args:
            caller: Account funding the pool; receives the initial LP shares
            asset_a: Becomes the pool's asset one
            asset_b: Becomes the pool's asset two
            amount_a: Initial reserve of asset_a
            amount_b: Initial reserve of asset_b

        Returns:
            The new, active pool

        Raises:
            InvalidPairError: If asset_a == asset_b
            InvalidAmountError: If either amount is not positive
            DuplicatePairError: If a pool exists for the pair (in either order)
            UnknownAssetError: If an asset has no ledger
            InsufficientAllowanceError, TransferFailure: If funds cannot be pulled
        """
        caller_norm = normalize_address(caller)
        asset_a_norm = normalize_address(asset_a)
        asset_b_norm = normalize_address(asset_b)
        if asset_a_norm == asset_b_norm:
            raise InvalidPairError(f"Cannot pair asset {asset_a_norm} with itself")
        if amount_a <= 0 or amount_b <= 0:
            raise InvalidAmountError(f"Initial deposits must be positive: ({amount_a}, {amount_b})")

        with self._lock:
            key = pair_key(asset_a_norm, asset_b_norm)
            existing = self._pools.get(key)
            if existing is not None:
                raise DuplicatePairError(
                    f"Pool {existing.address} already exists for {asset_a_norm}/{asset_b_norm}"
                )

            ledger_a = self._ledgers.get(asset_a_norm)
            ledger_b = self._ledgers.get(asset_b_norm)
            ensure_pullable(ledger_a, self.address, caller_norm, amount_a)
            ensure_pullable(ledger_b, self.address, caller_norm, amount_b)

            pool = LiquidityPool(
                address=derive_address(
                    ["address", "address", "address", "uint256"],
                    [
                        address_bytes(self.address),
                        address_bytes(asset_a_norm),
                        address_bytes(asset_b_norm),
                        self._nonce,
                    ],
                ),
                asset_one=asset_a_norm,
                asset_two=asset_b_norm,
                owner=self.address,
                ledgers=self._ledgers,
                clock=self._clock,
                fee_bps=self.config.fee_bps,
            )

            undo: list[Callable[[], None]] = []
            try:
                ledger_a.transfer_from(self.address, caller_norm, self.address, amount_a)
                undo.append(lambda: ledger_a.transfer(self.address, caller_norm, amount_a))
                ledger_b.transfer_from(self.address, caller_norm, self.address, amount_b)
                undo.append(lambda: ledger_b.transfer(self.address, caller_norm, amount_b))
                ledger_a.transfer(self.address, pool.address, amount_a)
                undo.append(lambda: ledger_a.transfer(pool.address, self.address, amount_a))
                ledger_b.transfer(self.address, pool.address, amount_b)
                undo.append(lambda: ledger_b.transfer(pool.address, self.address, amount_b))
                pool.initialize(self.address, amount_a, amount_b, beneficiary=caller_norm)
            except Exception:
                for step in reversed(undo):
                    step()
                logger.warning(
                    "pool_creation_rolled_back",
                    asset_one=asset_a_norm,
                    asset_two=asset_b_norm,
                    caller=caller_norm,
                    steps_undone=len(undo),
                )
                raise

            self._pools[key] = pool
            self._pools_by_address[pool.address] = pool
            for asset in (asset_a_norm, asset_b_norm):
                if asset not in self._token_set:
                    self._token_set.add(asset)
                    self._tokens.append(asset)
            self._pool_pairs.setdefault(asset_a_norm, []).append(asset_b_norm)
            self._pool_pairs.setdefault(asset_b_norm, []).append(asset_a_norm)
            self._pool_owner.setdefault(caller_norm, []).append(pool.address)
            self._nonce += 1
            self._events.append(
                PoolCreated(
                    pool=pool.address,
                    asset_one=asset_a_norm,
                    asset_two=asset_b_norm,
                    creator=caller_norm,
                )
            )

        logger.info(
            "pool_created",
            pool=pool.address,
            asset_one=asset_a_norm,
            asset_two=asset_b_norm,
            amount_one=amount_a,
            amount_two=amount_b,
            creator=caller_norm,
        )
        return pool

    def add_routing_address(self, caller: str, token: str, price_feed: str) -> RoutingEntry:
        """Append (token, price_feed) to the routing table.

        No uniqueness check: a token may be routed several times, and
        readers resolve it to its first entry.

        Raises:
            NotOwnerError: If caller is not the registry owner
        """
        caller_norm = normalize_address(caller)
        if caller_norm != self.owner:
            raise NotOwnerError(f"{caller_norm} is not the registry owner")

        entry = RoutingEntry(
            token_address=normalize_address(token, validate=True),
            price_feed=normalize_address(price_feed, validate=True),
        )
        with self._lock:
            self._routing_addresses.append(entry)
            self._events.append(
                RoutingAddressAdded(token_address=entry.token_address, price_feed=entry.price_feed)
            )

        logger.info(
            "routing_address_added",
            token=entry.token_address,
            price_feed=entry.price_feed,
            position=len(self._routing_addresses) - 1,
        )
        return entry

    # --- Pool lookups ---

    def pair_to_pool(self, token_a: str, token_b: str) -> LiquidityPool | None:
        """Get the pool for a pair (order independent), None if there is none."""
        return self._pools.get(pair_key(token_a, token_b))

    def require_pool(self, token_a: str, token_b: str) -> LiquidityPool:
        """Like pair_to_pool, but raises PoolNotFoundError when there is no pool."""
        pool = self.pair_to_pool(token_a, token_b)
        if pool is None:
            raise PoolNotFoundError(f"No pool for {token_a}/{token_b}")
        return pool

    def get_pool(self, address: str) -> LiquidityPool:
        """Get a pool by its address.

        Raises:
            UnknownPoolError: If no pool has this address
        """
        pool = self._pools_by_address.get(normalize_address(address))
        if pool is None:
            raise UnknownPoolError(f"No pool at {address}")
        return pool

    @property
    def pools(self) -> list[LiquidityPool]:
        with self._lock:
            return list(self._pools_by_address.values())

    @property
    def pool_count(self) -> int:
        return len(self._pools)

    @property
    def events(self) -> tuple[RegistryEvent, ...]:
        with self._lock:
            return tuple(self._events)

    # --- Indexed accessors ---

    def pool_pairs(self, asset: str, index: int) -> str:
        with self._lock:
            pairs = self._pool_pairs.get(normalize_address(asset), [])
            return _at(pairs, index, "pool_pairs")

    def get_pool_pairs_length(self, asset: str) -> int:
        return len(self._pool_pairs.get(normalize_address(asset), []))

    def all_pool_pairs(self, asset: str) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._pool_pairs.get(normalize_address(asset), []))

    def tokens(self, index: int) -> str:
        with self._lock:
            return _at(self._tokens, index, "tokens")

    def get_tokens_length(self) -> int:
        return len(self._tokens)

    def all_tokens(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._tokens)

    def pool_owner(self, creator: str, index: int) -> str:
        """Address of the index-th pool created by creator."""
        with self._lock:
            created = self._pool_owner.get(normalize_address(creator), [])
            return _at(created, index, "pool_owner")

    def get_pool_owner_length(self, creator: str) -> int:
        return len(self._pool_owner.get(normalize_address(creator), []))

    def all_pool_owner(self, creator: str) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._pool_owner.get(normalize_address(creator), []))

    def routing_addresses(self, index: int) -> RoutingEntry:
        with self._lock:
            return _at(self._routing_addresses, index, "routing_addresses")

    def get_routing_addresses_length(self) -> int:
        return len(self._routing_addresses)

    def all_routing_addresses(self) -> tuple[RoutingEntry, ...]:
        with self._lock:
            return tuple(self._routing_addresses)
