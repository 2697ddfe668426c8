"""Read-only valuation and pool metrics."""

from pooltracker.metrics.engine import PairState, PoolMetrics, PoolReport
from pooltracker.metrics.valuation import Valuation, ValuationSource

__all__ = [
    "PairState",
    "PoolMetrics",
    "PoolReport",
    "Valuation",
    "ValuationSource",
]
