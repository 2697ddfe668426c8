"""Asset ledger interface and in-memory ERC20-style implementation.

The core only consumes the AssetLedger protocol. Token is an in-memory
ledger used by the standalone service, scripts and tests; any other ledger
(e.g. one backed by a node RPC) can be registered in a TokenDirectory
as long as it follows the protocol.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Protocol, runtime_checkable

import structlog

from pooltracker.constants import DEFAULT_TOKEN_DECIMALS
from pooltracker.errors import (
    InsufficientAllowanceError,
    InvalidAmountError,
    TransferFailure,
    UnknownAssetError,
)
from pooltracker.models.types import normalize_address

logger = structlog.get_logger()


@runtime_checkable
class AssetLedger(Protocol):
    """Balance, transfer and allowance semantics of a fungible token."""

    address: str

    def total_supply(self) -> int: ...

    def balance_of(self, holder: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move amount from sender to recipient.

        Raises:
            TransferFailure: If sender's balance is insufficient
        """
        ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """Move amount from owner to recipient using spender's allowance.

        Raises:
            InsufficientAllowanceError: If the allowance is too small
            TransferFailure: If owner's balance is insufficient
        """
        ...


class Token:
    """In-memory ERC20 token.

    Balances and allowances are plain integer maps guarded by a lock, so a
    transfer either fully applies or raises without changing anything.
    """

    def __init__(
        self,
        address: str,
        symbol: str,
        decimals: int = DEFAULT_TOKEN_DECIMALS,
        name: str | None = None,
    ) -> None:
        self.address = normalize_address(address, validate=True)
        self.symbol = symbol
        self.name = name or symbol
        self.decimals = decimals
        self._total_supply = 0
        self._balances: defaultdict[str, int] = defaultdict(int)
        self._allowances: defaultdict[tuple[str, str], int] = defaultdict(int)
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address})"

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, holder: str) -> int:
        return self._balances.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def mint(self, to: str, amount: int) -> None:
        """Create new supply and credit it to an account."""
        if amount < 0:
            raise InvalidAmountError(f"Cannot mint a negative amount: {amount}")
        with self._lock:
            self._balances[normalize_address(to)] += amount
            self._total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set spender's allowance over owner's balance (overwrites)."""
        if amount < 0:
            raise InvalidAmountError(f"Cannot approve a negative amount: {amount}")
        with self._lock:
            self._allowances[(normalize_address(owner), normalize_address(spender))] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError(f"Cannot transfer a negative amount: {amount}")
        sender_norm = normalize_address(sender)
        with self._lock:
            balance = self._balances.get(sender_norm, 0)
            if balance < amount:
                raise TransferFailure(
                    f"{self.symbol}: balance of {sender_norm} is {balance}, need {amount}"
                )
            self._balances[sender_norm] = balance - amount
            self._balances[normalize_address(recipient)] += amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        key = (normalize_address(owner), normalize_address(spender))
        with self._lock:
            allowed = self._allowances.get(key, 0)
            if allowed < amount:
                raise InsufficientAllowanceError(
                    f"{self.symbol}: allowance of {key[1]} over {key[0]} is {allowed}, "
                    f"need {amount}"
                )
            self.transfer(owner, recipient, amount)
            self._allowances[key] = allowed - amount


class TokenDirectory:
    """Address -> ledger lookup for every asset the core can touch."""

    def __init__(self, ledgers: list[AssetLedger] | None = None) -> None:
        self._ledgers: dict[str, AssetLedger] = {}
        for ledger in ledgers or []:
            self.register(ledger)

    def register(self, ledger: AssetLedger) -> AssetLedger:
        address = normalize_address(ledger.address)
        if address in self._ledgers:
            logger.debug("ledger_replaced", token=address)
        self._ledgers[address] = ledger
        return ledger

    def get(self, address: str) -> AssetLedger:
        """Return the ledger for an asset.

        Raises:
            UnknownAssetError: If no ledger is registered for the address
        """
        ledger = self._ledgers.get(normalize_address(address))
        if ledger is None:
            raise UnknownAssetError(f"No ledger registered for asset {address}")
        return ledger

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and normalize_address(address) in self._ledgers

    def __len__(self) -> int:
        return len(self._ledgers)


def ensure_pullable(ledger: AssetLedger, spender: str, owner: str, amount: int) -> None:
    """Check that transfer_from(spender, owner, ..., amount) would succeed.

    Lets multi-asset operations validate every leg before moving any funds.

    Raises:
        InsufficientAllowanceError: If spender's allowance is too small
        TransferFailure: If owner's balance is too small
    """
    allowed = ledger.allowance(owner, spender)
    if allowed < amount:
        raise InsufficientAllowanceError(
            f"Allowance of {spender} over {owner} on {ledger.address} is {allowed}, need {amount}"
        )
    balance = ledger.balance_of(owner)
    if balance < amount:
        raise TransferFailure(
            f"Balance of {owner} on {ledger.address} is {balance}, need {amount}"
        )
