"""Pytest configuration and fixtures."""

import pytest

from pooltracker.clock import ManualClock
from pooltracker.context import PoolTrackerContext
from pooltracker.ledger import Token
from pooltracker.pools import LiquidityPool
from tests.helpers import ALICE, BOB, make_context, make_token, seed_pool


@pytest.fixture
def context() -> PoolTrackerContext:
    """Fresh context with no fee, on a manual clock."""
    return make_context()


@pytest.fixture
def clock(context: PoolTrackerContext) -> ManualClock:
    """The context's manual clock."""
    assert isinstance(context.clock, ManualClock)
    return context.clock


@pytest.fixture
def token_a(context: PoolTrackerContext) -> Token:
    """Token A, 10_000 base units each for ALICE and BOB."""
    return make_token(context, "TKA", {ALICE: 10_000, BOB: 10_000})


@pytest.fixture
def token_b(context: PoolTrackerContext) -> Token:
    """Token B, 10_000 base units each for ALICE and BOB."""
    return make_token(context, "TKB", {ALICE: 10_000, BOB: 10_000})


@pytest.fixture
def pool(context: PoolTrackerContext, token_a: Token, token_b: Token) -> LiquidityPool:
    """A/B pool created by ALICE with reserves (1000, 1000)."""
    return seed_pool(context, ALICE, token_a, token_b, 1000, 1000)
