"""AMM (Automated Market Maker) math."""

from pooltracker.amm.base import AMM, LiquidityChange, SwapResult
from pooltracker.amm.constant_product import ConstantProduct, constant_product

__all__ = [
    "AMM",
    "SwapResult",
    "LiquidityChange",
    "ConstantProduct",
    "constant_product",
]
