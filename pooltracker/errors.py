"""Error classes for pool registry, pool and metrics operations.

Every error raised by the core derives from PoolTrackerError so callers
(and the HTTP layer) can catch the whole family at once.
"""


class PoolTrackerError(Exception):
    """Base error for all pooltracker operations."""

    pass


# --- Arithmetic ---


class SafeIntError(PoolTrackerError, ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZeroError(SafeIntError):
    """Division or modulo by zero."""

    pass


class UnderflowError(SafeIntError):
    """Subtraction would produce negative result."""

    pass


class Uint256Overflow(SafeIntError):
    """Value exceeds uint256 maximum."""

    pass


# --- Registry ---


class DuplicatePairError(PoolTrackerError):
    """A pool already exists for this unordered asset pair."""

    pass


class InvalidPairError(PoolTrackerError):
    """Both sides of the pair are the same asset."""

    pass


class NotOwnerError(PoolTrackerError):
    """Caller is not the registry's administrative owner."""

    pass


class IndexOutOfRangeError(PoolTrackerError, IndexError):
    """Index is beyond the length of a registry sequence."""

    pass


class UnknownPoolError(PoolTrackerError):
    """No pool is registered at this address."""

    pass


class PoolNotFoundError(PoolTrackerError):
    """No pool exists for this asset pair."""

    pass


# --- Ledger / oracle ---


class UnknownAssetError(PoolTrackerError):
    """Asset is not part of the pool, or has no ledger."""

    pass


class UnknownFeedError(PoolTrackerError):
    """No price feed is registered at this address."""

    pass


class InsufficientAllowanceError(PoolTrackerError):
    """Spender's allowance is smaller than the requested transfer."""

    pass


class TransferFailure(PoolTrackerError):
    """Ledger transfer failed (e.g. insufficient balance)."""

    pass


# --- Pool ---


class InvalidAmountError(PoolTrackerError, ValueError):
    """Amount is negative, or zero where a positive amount is required."""

    pass


class PoolAlreadyInitializedError(PoolTrackerError):
    """Pool received its initial deposit already."""

    pass


class InsufficientLiquidityError(PoolTrackerError):
    """Operation would produce nothing or drain a reserve."""

    pass


class InsufficientSharesError(PoolTrackerError):
    """Provider owns fewer LP shares than requested."""

    pass


class SlippageExceededError(PoolTrackerError):
    """Executed amount is below the caller's minimum."""

    pass


# --- Metrics ---


class NoValuationPathError(PoolTrackerError):
    """No routing entry or direct pool can value the token."""

    pass
