"""pooltracker - liquidity pool registry, constant product swaps and pool metrics."""

from pooltracker.context import PoolTrackerContext, build_context
from pooltracker.metrics import PoolMetrics
from pooltracker.pools import LiquidityPool, PoolRegistry

__version__ = "0.1.0"
__all__ = [
    "PoolTrackerContext",
    "build_context",
    "PoolRegistry",
    "LiquidityPool",
    "PoolMetrics",
    "__version__",
]
