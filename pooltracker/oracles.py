"""Price oracle interface and a static, updatable price feed.

Feeds report a fixed-point integer price (scaled by 10**decimals) and the
timestamp of the last update, like a Chainlink aggregator's latestRoundData.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

import structlog

from pooltracker.clock import Clock, SystemClock
from pooltracker.constants import DEFAULT_FEED_DECIMALS
from pooltracker.errors import InvalidAmountError, UnknownFeedError
from pooltracker.models.types import normalize_address

logger = structlog.get_logger()


@runtime_checkable
class PriceOracle(Protocol):
    """Source of the latest price for one asset in the valuation unit."""

    address: str
    decimals: int

    def latest_price(self) -> tuple[int, int]:
        """Return (value, timestamp); value is scaled by 10**decimals."""
        ...


class StaticPriceFeed:
    """Price feed holding a single answer that can be pushed by an operator."""

    def __init__(
        self,
        address: str,
        initial_price: int,
        decimals: int = DEFAULT_FEED_DECIMALS,
        description: str = "",
        clock: Clock | None = None,
    ) -> None:
        if initial_price < 0:
            raise InvalidAmountError(f"Price cannot be negative: {initial_price}")
        self.address = normalize_address(address, validate=True)
        self.decimals = decimals
        self.description = description
        self._clock = clock or SystemClock()
        self._price = initial_price
        self._updated_at = self._clock.now()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"StaticPriceFeed({self.description or self.address}, {self._price})"

    def latest_price(self) -> tuple[int, int]:
        with self._lock:
            return self._price, self._updated_at

    def update_price(self, price: int) -> None:
        if price < 0:
            raise InvalidAmountError(f"Price cannot be negative: {price}")
        with self._lock:
            self._price = price
            self._updated_at = self._clock.now()
        logger.debug("feed_price_updated", feed=self.address[-8:], price=price)


class FeedDirectory:
    """Address -> price oracle lookup."""

    def __init__(self, feeds: list[PriceOracle] | None = None) -> None:
        self._feeds: dict[str, PriceOracle] = {}
        for feed in feeds or []:
            self.register(feed)

    def register(self, feed: PriceOracle) -> PriceOracle:
        self._feeds[normalize_address(feed.address)] = feed
        return feed

    def get(self, address: str) -> PriceOracle:
        """Return the oracle at an address.

        Raises:
            UnknownFeedError: If no feed is registered for the address
        """
        feed = self._feeds.get(normalize_address(address))
        if feed is None:
            raise UnknownFeedError(f"No price feed registered at {address}")
        return feed

    def price(self, address: str) -> int:
        """Latest price value of the feed at an address."""
        value, _timestamp = self.get(address).latest_price()
        return value

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and normalize_address(address) in self._feeds
