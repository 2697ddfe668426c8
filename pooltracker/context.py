"""Process context wiring ledgers, feeds, registry and metrics together.

A context is built once at process start (see build_context) and handed to
whatever needs it: the HTTP API, scripts, tests. There is no module-level
registry; two contexts never share state.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field

import structlog

from pooltracker.clock import Clock, SystemClock
from pooltracker.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from pooltracker.constants import DEFAULT_FEED_DECIMALS, DEFAULT_TOKEN_DECIMALS
from pooltracker.ledger import Token, TokenDirectory
from pooltracker.metrics import PoolMetrics
from pooltracker.models.types import address_bytes, derive_address, normalize_address
from pooltracker.oracles import FeedDirectory, StaticPriceFeed
from pooltracker.pools import PoolRegistry

logger = structlog.get_logger()


@dataclass
class PoolTrackerContext:
    """Everything one pooltracker instance needs, constructed once."""

    owner: str
    clock: Clock
    config: EngineConfig
    ledgers: TokenDirectory
    feeds: FeedDirectory
    registry: PoolRegistry
    metrics: PoolMetrics
    _nonce: int = field(default=0, repr=False)
    _nonce_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def new_address(self, label: str) -> str:
        """Allocate a fresh deterministic address for an in-memory token or feed."""
        with self._nonce_lock:
            nonce = self._nonce
            self._nonce += 1
        return derive_address(
            ["address", "string", "uint256"],
            [address_bytes(self.registry.address), label, nonce],
        )

    def create_token(
        self,
        symbol: str,
        initial_supply: int = 0,
        holder: str | None = None,
        decimals: int = DEFAULT_TOKEN_DECIMALS,
        name: str | None = None,
    ) -> Token:
        """Create and register an in-memory token, minting supply to holder."""
        token = Token(self.new_address(f"token:{symbol}"), symbol, decimals=decimals, name=name)
        if initial_supply:
            token.mint(holder or self.owner, initial_supply)
        self.ledgers.register(token)
        logger.info(
            "token_created",
            token=token.address,
            symbol=symbol,
            initial_supply=initial_supply,
        )
        return token

    def create_price_feed(
        self,
        price: int,
        decimals: int = DEFAULT_FEED_DECIMALS,
        description: str = "",
        base: bool = False,
    ) -> StaticPriceFeed:
        """Create and register a static price feed.

        Args:
            price: Initial price, scaled by 10**decimals
            decimals: Feed decimals
            description: Human-readable pair, e.g. "ETH / USD"
            base: Also use this feed as the metrics base price feed
        """
        feed = StaticPriceFeed(
            self.new_address(f"feed:{description}"),
            price,
            decimals=decimals,
            description=description,
            clock=self.clock,
        )
        self.feeds.register(feed)
        if base:
            self.metrics.set_base_price_feed(feed.address)
        logger.info("price_feed_created", feed=feed.address, price=price, base=base)
        return feed


def build_context(
    owner: str,
    clock: Clock | None = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    base_price_feed: str | None = None,
) -> PoolTrackerContext:
    """Construct a context with empty ledgers, feeds and registry.

    Args:
        owner: Registry administrative owner
        clock: Time source (default: wall clock)
        config: Engine configuration
        base_price_feed: Address of the feed that prices pool yield
    """
    owner_norm = normalize_address(owner, validate=True)
    clock = clock or SystemClock()
    ledgers = TokenDirectory()
    feeds = FeedDirectory()
    registry = PoolRegistry(owner=owner_norm, ledgers=ledgers, clock=clock, config=config)
    metrics = PoolMetrics(
        registry=registry,
        ledgers=ledgers,
        feeds=feeds,
        clock=clock,
        base_price_feed=base_price_feed,
        config=config,
    )
    logger.info(
        "context_built",
        owner=owner_norm,
        registry=registry.address,
        fee_bps=config.fee_bps,
    )
    return PoolTrackerContext(
        owner=owner_norm,
        clock=clock,
        config=config,
        ledgers=ledgers,
        feeds=feeds,
        registry=registry,
        metrics=metrics,
    )


# Hardhat's first development account, the deployer in local setups
DEFAULT_ADMIN = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"


def context_from_env() -> PoolTrackerContext:
    """Build a context configured from environment variables.

    - POOLTRACKER_ADMIN: Registry owner (default: DEFAULT_ADMIN)
    - POOLTRACKER_FEE_BPS, POOLTRACKER_QUOTE_UNIT, ...: see EngineConfig.from_env
    """
    return build_context(
        owner=os.environ.get("POOLTRACKER_ADMIN", DEFAULT_ADMIN),
        config=EngineConfig.from_env(),
    )
