"""Engine configuration for pools and metrics."""

import os
from dataclasses import dataclass

from pooltracker.constants import (
    BPS_DENOMINATOR,
    DEFAULT_QUOTE_UNIT,
    ROI_SCALING_FACTOR,
    SECONDS_PER_DAY,
)


@dataclass(frozen=True)
class EngineConfig:
    """Centralized configuration for swap and valuation math.

    Attributes:
        fee_bps: Swap fee in basis points taken from the input amount of
            every swap (default: 0, no fee). Fees stay in the pool and
            accrue to the pool's yield.
        quote_unit: Amount of a token quoted through a pool when valuing it
            against a routing token (default: 1, one base unit). A larger unit
            such as 1e18 quotes a whole token, and the value is scaled by
            amount // quote_unit.
        roi_scaling_factor: Fixed-point scale of daily ROI (default: 1e18)
        seconds_per_day: Length of a day for daily rate calculations
    """

    fee_bps: int = 0
    quote_unit: int = DEFAULT_QUOTE_UNIT
    roi_scaling_factor: int = ROI_SCALING_FACTOR
    seconds_per_day: int = SECONDS_PER_DAY

    def __post_init__(self) -> None:
        if not (0 <= self.fee_bps < BPS_DENOMINATOR):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOMINATOR}): {self.fee_bps}")
        if self.quote_unit <= 0:
            raise ValueError(f"quote_unit must be positive: {self.quote_unit}")
        if self.roi_scaling_factor <= 0:
            raise ValueError(f"roi_scaling_factor must be positive: {self.roi_scaling_factor}")
        if self.seconds_per_day <= 0:
            raise ValueError(f"seconds_per_day must be positive: {self.seconds_per_day}")

    @classmethod
    def from_env(cls, prefix: str = "POOLTRACKER_") -> "EngineConfig":
        """Build a config from environment variables.

        Reads {prefix}FEE_BPS, {prefix}QUOTE_UNIT, {prefix}ROI_SCALING_FACTOR
        and {prefix}SECONDS_PER_DAY, falling back to the defaults.
        """
        defaults = cls()
        return cls(
            fee_bps=int(os.environ.get(f"{prefix}FEE_BPS", defaults.fee_bps)),
            quote_unit=int(os.environ.get(f"{prefix}QUOTE_UNIT", defaults.quote_unit)),
            roi_scaling_factor=int(
                os.environ.get(f"{prefix}ROI_SCALING_FACTOR", defaults.roi_scaling_factor)
            ),
            seconds_per_day=int(
                os.environ.get(f"{prefix}SECONDS_PER_DAY", defaults.seconds_per_day)
            ),
        )


# Default configuration instance
DEFAULT_ENGINE_CONFIG = EngineConfig()
