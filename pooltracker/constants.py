"""Protocol constants for pooltracker.

Centralizes fixed-point scales and time units shared by pools and metrics.
"""

# Fees are expressed in basis points of the input amount
BPS_DENOMINATOR = 10_000

# Default ERC20 decimals; amounts are integers in base units (1e18 = one token)
DEFAULT_TOKEN_DECIMALS = 18

# Amount quoted through a pool when valuing a token via a routing asset.
# One base unit; set 10**decimals to quote a whole token instead.
DEFAULT_QUOTE_UNIT = 1

# Chainlink-style aggregators report USD prices with 8 decimals
DEFAULT_FEED_DECIMALS = 8

# Scaling applied to daily ROI so sub-unit results survive integer division
ROI_SCALING_FACTOR = 10**18

SECONDS_PER_DAY = 24 * 60 * 60

# Percent multiplier for ratio metrics (tvl ratio, total roi)
PERCENT = 100
