#!/usr/bin/env python3
"""Simulate a pool over a few days and print its metrics report.

Builds an in-memory context on a manual clock, creates two routed tokens
and a pool between them, trades against the pool once per simulated day
and prints the pool report at the end.

Run with: python scripts/pool_metrics_report.py --days 7 --fee-bps 30
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pooltracker.clock import ManualClock  # noqa: E402
from pooltracker.config import EngineConfig  # noqa: E402
from pooltracker.constants import SECONDS_PER_DAY  # noqa: E402
from pooltracker.context import DEFAULT_ADMIN, build_context  # noqa: E402
from pooltracker.metrics import PoolReport  # noqa: E402

logger = structlog.get_logger()

LP = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
TRADER = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
ONE = 10**18
FEED_ONE = 10**8


def simulate(days: int, fee_bps: int, trade_size: int) -> PoolReport:
    """Run the simulation and return the final pool report."""
    clock = ManualClock(start=1_700_000_000)
    context = build_context(owner=DEFAULT_ADMIN, clock=clock, config=EngineConfig(fee_bps=fee_bps))
    registry = context.registry

    context.create_price_feed(FEED_ONE, description="USD / USD", base=True)
    weth = context.create_token("WETH", 1_000 * ONE, LP)
    usdc = context.create_token("USDC", 2_000_000 * ONE, LP)
    weth.mint(TRADER, 100 * ONE)
    usdc.mint(TRADER, 200_000 * ONE)

    for token, price in ((weth, 2_000 * FEED_ONE), (usdc, FEED_ONE)):
        feed = context.create_price_feed(price, description=f"{token.symbol} / USD")
        registry.add_routing_address(DEFAULT_ADMIN, token.address, feed.address)

    weth.approve(LP, registry.address, 100 * ONE)
    usdc.approve(LP, registry.address, 200_000 * ONE)
    pool = registry.create_pool(LP, weth.address, usdc.address, 100 * ONE, 200_000 * ONE)

    weth.approve(TRADER, pool.address, 100 * ONE)
    usdc.approve(TRADER, pool.address, 200_000 * ONE)
    for day in range(days):
        clock.advance(SECONDS_PER_DAY)
        # Alternate direction so reserves stay near the initial ratio
        if day % 2 == 0:
            result = pool.swap(TRADER, weth.address, trade_size)
        else:
            result = pool.swap(TRADER, usdc.address, trade_size * 2_000)
        logger.info("simulated_swap", day=day + 1, amount_out=result.amount_out)

    return context.metrics.pool_report(weth.address, usdc.address)


def print_report(report: PoolReport) -> None:
    print(f"Pool:            {report.pool}")
    print(f"Reserves:        {report.reserve_one} / {report.reserve_two}")
    print(f"Yield:           {report.yield_amount}")
    print(f"Pair market cap: {report.pair_market_cap}")
    print(f"Pair TVL:        {report.pair_tvl}")
    print(f"TVL ratio:       {report.pair_tvl_ratio}")
    print(f"Total ROI:       {report.total_roi}")
    print(f"Daily rate:      {report.daily_rate}")
    print(f"Daily ROI:       {report.daily_roi}")


def main():
    parser = argparse.ArgumentParser(description="Simulate a pool and report its metrics")
    parser.add_argument("--days", type=int, default=7, help="Days to simulate")
    parser.add_argument("--fee-bps", type=int, default=30, help="Swap fee in basis points")
    parser.add_argument(
        "--trade-size", type=int, default=ONE, help="WETH base units traded per day"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every swap")
    args = parser.parse_args()

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if args.verbose else logging.WARNING
        ),
    )

    report = simulate(args.days, args.fee_bps, args.trade_size)
    print_report(report)


if __name__ == "__main__":
    main()
