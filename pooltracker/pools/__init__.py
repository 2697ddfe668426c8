"""Pool management package.

Provides LiquidityPool and the PoolRegistry that creates and indexes them.
"""

from .events import PoolCreated, RoutingAddressAdded
from .pool import LiquidityPool, PoolSnapshot, PoolStatus
from .registry import PoolRegistry, RoutingEntry, pair_key

__all__ = [
    "PoolRegistry",
    "RoutingEntry",
    "pair_key",
    "LiquidityPool",
    "PoolSnapshot",
    "PoolStatus",
    "PoolCreated",
    "RoutingAddressAdded",
]
