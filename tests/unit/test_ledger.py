"""Tests for the in-memory token ledger and token directory."""

import pytest

from pooltracker.errors import (
    InsufficientAllowanceError,
    InvalidAmountError,
    TransferFailure,
    UnknownAssetError,
)
from pooltracker.ledger import AssetLedger, Token, TokenDirectory, ensure_pullable
from tests.helpers import ALICE, BOB, CAROL, UNUSED_TOKEN


@pytest.fixture
def token() -> Token:
    token = Token(UNUSED_TOKEN, "TKN")
    token.mint(ALICE, 1000)
    return token


class TestToken:
    def test_follows_ledger_protocol(self, token):
        assert isinstance(token, AssetLedger)

    def test_mint(self, token):
        assert token.total_supply() == 1000
        assert token.balance_of(ALICE) == 1000
        assert token.balance_of(BOB) == 0

    def test_mint_negative(self, token):
        with pytest.raises(InvalidAmountError):
            token.mint(ALICE, -1)

    def test_name_defaults_to_symbol(self, token):
        assert token.name == "TKN"
        assert token.decimals == 18

    def test_transfer(self, token):
        token.transfer(ALICE, BOB, 300)
        assert token.balance_of(ALICE) == 700
        assert token.balance_of(BOB) == 300
        assert token.total_supply() == 1000

    def test_transfer_insufficient_balance(self, token):
        with pytest.raises(TransferFailure):
            token.transfer(BOB, ALICE, 1)
        assert token.balance_of(ALICE) == 1000

    def test_transfer_negative(self, token):
        with pytest.raises(InvalidAmountError):
            token.transfer(ALICE, BOB, -1)

    def test_addresses_case_insensitive(self, token):
        token.transfer(ALICE.upper().replace("0X", "0x"), BOB, 100)
        assert token.balance_of(ALICE) == 900

    def test_approve_overwrites(self, token):
        token.approve(ALICE, BOB, 100)
        token.approve(ALICE, BOB, 40)
        assert token.allowance(ALICE, BOB) == 40

    def test_transfer_from(self, token):
        token.approve(ALICE, BOB, 100)
        token.transfer_from(BOB, ALICE, CAROL, 60)
        assert token.balance_of(CAROL) == 60
        assert token.allowance(ALICE, BOB) == 40

    def test_transfer_from_over_allowance(self, token):
        token.approve(ALICE, BOB, 100)
        with pytest.raises(InsufficientAllowanceError):
            token.transfer_from(BOB, ALICE, CAROL, 101)
        assert token.allowance(ALICE, BOB) == 100

    def test_transfer_from_over_balance_keeps_allowance(self, token):
        token.approve(ALICE, BOB, 5000)
        with pytest.raises(TransferFailure):
            token.transfer_from(BOB, ALICE, CAROL, 2000)
        assert token.allowance(ALICE, BOB) == 5000


class TestEnsurePullable:
    def test_passes(self, token):
        token.approve(ALICE, BOB, 100)
        ensure_pullable(token, BOB, ALICE, 100)

    def test_allowance_checked_first(self, token):
        with pytest.raises(InsufficientAllowanceError):
            ensure_pullable(token, BOB, CAROL, 100)

    def test_balance(self, token):
        token.approve(CAROL, BOB, 100)
        with pytest.raises(TransferFailure):
            ensure_pullable(token, BOB, CAROL, 100)


class TestTokenDirectory:
    def test_register_and_get(self, token):
        directory = TokenDirectory([token])
        assert directory.get(UNUSED_TOKEN) is token
        assert UNUSED_TOKEN in directory
        assert len(directory) == 1

    def test_unknown(self):
        with pytest.raises(UnknownAssetError):
            TokenDirectory().get(UNUSED_TOKEN)
        assert UNUSED_TOKEN not in TokenDirectory()
