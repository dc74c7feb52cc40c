"""
conftest.py - Shared pytest fixtures for vesting tests

Provides common fixtures used across unit and conformance tests:
- A ledger with the custody token registered and a funded treasury
- A custody asset adapter over that ledger
- Vaults with and without a committed schedule
"""

import pytest

from vesting import (
    Ledger, Move, ExecuteResult, SYSTEM_WALLET,
    LedgerCustodyAsset, VestingVault, build_transaction, token,
)


T0 = 1_700_000_000
TREASURY_FUNDS = 1_000_000


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def fund(ledger: Ledger, wallet: str, amount: int, unit: str = "TKN") -> None:
    """Issue `amount` of `unit` to `wallet` from the system wallet."""
    ledger.ensure_wallet(wallet)
    tx = build_transaction(ledger, [
        Move(amount, unit, SYSTEM_WALLET, wallet, f"fund:{wallet}:{len(ledger.transaction_log)}")
    ])
    assert ledger.execute(tx) == ExecuteResult.APPLIED


def make_ledger(initial_time: int = T0) -> Ledger:
    ledger = Ledger("test", initial_time=initial_time)
    ledger.register_unit(token("TKN", "Project Token"))
    fund(ledger, "treasury", TREASURY_FUNDS)
    return ledger


def make_vault(ledger: Ledger, custody=None) -> VestingVault:
    custody = custody or LedgerCustodyAsset(ledger, "TKN", holder="vesting_custody")
    return VestingVault(ledger, custody, minter="treasury", schedule_authority="admin")


def commit_default_schedule(vault: VestingVault) -> None:
    """Cliff at T0+100, 10% initial, two equal periods ending T0+200 and T0+300."""
    vault.set_vesting_schedule(
        "admin", T0, T0 + 100, 10,
        [(T0 + 200, 5_000), (T0 + 300, 5_000)],
    )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    return make_ledger()


@pytest.fixture
def custody(ledger):
    return LedgerCustodyAsset(ledger, "TKN", holder="vesting_custody")


@pytest.fixture
def vault(ledger, custody):
    """Vault with no schedule committed."""
    return make_vault(ledger, custody)


@pytest.fixture
def scheduled_vault(vault):
    """Vault with the default schedule committed, still before the cliff."""
    commit_default_schedule(vault)
    return vault


@pytest.fixture
def funded_vault(scheduled_vault):
    """Scheduled vault with 1000 deposited for alice and 400 for bob."""
    scheduled_vault.deposit("treasury", "alice", 1_000)
    scheduled_vault.deposit("treasury", "bob", 400)
    return scheduled_vault
