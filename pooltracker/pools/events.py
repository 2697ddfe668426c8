"""Events emitted by the pool registry."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PoolCreated:
    """A pool was created and seeded for (asset_one, asset_two)."""

    pool: str
    asset_one: str
    asset_two: str
    creator: str


@dataclass(frozen=True)
class RoutingAddressAdded:
    """A (token, price feed) pair was appended to the routing table."""

    token_address: str
    price_feed: str


RegistryEvent = PoolCreated | RoutingAddressAdded
