"""Valuation result types."""

from dataclasses import dataclass
from enum import Enum


class ValuationSource(Enum):
    """Where a valuation came from."""

    ROUTING = "routing"  # token has its own routing entry
    POOL = "pool"  # token quoted through a direct pool to a routing token
    NO_PATH = "no_path"  # no routing entry and no direct pool


@dataclass(frozen=True)
class Valuation:
    """Result of valuing an amount of a token in the valuation unit.

    A NO_PATH valuation has value 0 like an asset that is genuinely worth
    nothing, but the two cases stay distinguishable through `source`.

    Attributes:
        token: The token being valued
        amount: Amount of the token, in its base units
        value: Valuation, scaled by the feed's decimals
        source: How the value was obtained
        routing_token: Routing entry token used (None for NO_PATH)
        price_feed: Price feed used (None for NO_PATH)
    """

    token: str
    amount: int
    value: int
    source: ValuationSource
    routing_token: str | None = None
    price_feed: str | None = None

    @property
    def has_path(self) -> bool:
        return self.source is not ValuationSource.NO_PATH

    @classmethod
    def no_path(cls, token: str, amount: int) -> "Valuation":
        return cls(token=token, amount=amount, value=0, source=ValuationSource.NO_PATH)
