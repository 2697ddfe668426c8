"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Accounts, times and common amounts
- factories: Context, token and pool factory functions
"""

from tests.helpers.constants import (
    ADMIN,
    ALICE,
    BOB,
    CAROL,
    DAY,
    FEED_ONE,
    ONE,
    START_TIME,
    UNUSED_FEED,
    UNUSED_TOKEN,
)
from tests.helpers.factories import make_context, make_token, route, seed_pool

__all__ = [
    # Constants
    "ADMIN",
    "ALICE",
    "BOB",
    "CAROL",
    "UNUSED_TOKEN",
    "UNUSED_FEED",
    "START_TIME",
    "DAY",
    "ONE",
    "FEED_ONE",
    # Factories
    "make_context",
    "make_token",
    "seed_pool",
    "route",
]
