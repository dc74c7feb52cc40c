"""
test_custody.py - Unit tests for the ledger-backed custody asset
"""

from vesting import CustodyAsset, LedgerCustodyAsset


def test_implements_protocol(custody):
    assert isinstance(custody, CustodyAsset)
    assert custody.address == "TKN"


def test_holder_wallet_registered(ledger, custody):
    assert ledger.is_registered("vesting_custody")


def test_transfer_from_and_transfer(ledger, custody):
    assert custody.transfer_from("treasury", "vesting_custody", 300)
    assert custody.balance_of("vesting_custody") == 300

    assert custody.transfer("alice", 120)
    assert custody.balance_of("alice") == 120
    assert custody.balance_of("vesting_custody") == 180


def test_repeated_equal_transfers_both_apply(ledger, custody):
    assert custody.transfer_from("treasury", "vesting_custody", 10)
    assert custody.transfer_from("treasury", "vesting_custody", 10)
    assert custody.balance_of("vesting_custody") == 20


def test_insufficient_balance_returns_false(ledger, custody):
    assert not custody.transfer("alice", 1)
    assert "min" in ledger.last_rejection
    assert custody.balance_of("alice") == 0


def test_unknown_payer_returns_false(custody):
    assert not custody.transfer_from("ghost", "vesting_custody", 1)


def test_balance_of_unregistered_wallet(custody):
    assert custody.balance_of("nobody") == 0


def test_existing_holder_is_reused(ledger):
    ledger.register_wallet("vault_wallet")
    custody = LedgerCustodyAsset(ledger, "TKN", holder="vault_wallet")
    assert custody.holder == "vault_wallet"
