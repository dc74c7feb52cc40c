#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: A Vesting Vault Step by Step

Walks through the life of a vesting vault: configuring the schedule,
locking deposits, watching them unlock and claiming them. Press Enter to
advance.

WHAT YOU'LL LEARN:
  1-2: Setup       - The token ledger, the custody asset, the vault
  3-4: Locking     - The schedule, deposits, non-transferable shares
  5-6: Unlocking   - The unlock curve, claims, the cliff rule
  7:   Guarantees  - Rejections roll back, conservation holds

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from typing import List, Tuple
import sys

from vesting import (
    Ledger, Move, SYSTEM_WALLET,
    build_transaction, token,
    LedgerCustodyAsset, VestingVault,
    CliffElapsed, NothingToClaim, TransfersNotAllowed,
    configure_logging,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: int = 1_735_689_600          # 2025-01-01 00:00:00 UTC
    cliff_delay: int = 90 * 86_400           # 90 days
    initial_unlock_percent: int = 10
    # (seconds after the cliff, portion in basis points)
    periods: List[Tuple[int, int]] = field(default_factory=lambda: [
        (90 * 86_400, 2_500),
        (180 * 86_400, 2_500),
        (360 * 86_400, 5_000),
    ])
    treasury_supply: int = 10_000_000
    alice_grant: int = 1_200_000
    bob_grant: int = 400_000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv

DAY = 86_400


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def day_of(t: int) -> int:
    return (t - CONFIG.start_time) // DAY


# ============================================================================
# STEPS
# ============================================================================

def step_01_ledger() -> Ledger:
    step_header(1, "The Token Ledger",
        "Create the ledger that holds the custody token and fund the treasury.")

    ledger = Ledger("tutorial", initial_time=CONFIG.start_time)
    ledger.register_unit(token("TKN", "Project Token"))
    ledger.register_wallet("treasury")
    result = ledger.execute(build_transaction(ledger, [
        Move(CONFIG.treasury_supply, "TKN", SYSTEM_WALLET, "treasury", "genesis")
    ]))
    print(f">>> genesis issuance: {result.value}")
    print(f"treasury TKN: {ledger.get_balance('treasury', 'TKN'):,}")
    print(f"system   TKN: {ledger.get_balance(SYSTEM_WALLET, 'TKN'):,}  (issuance is a negative system balance)")
    return ledger


def step_02_vault(ledger: Ledger) -> VestingVault:
    step_header(2, "The Vault",
        "Wrap the token as a custody asset and build the vault around it.")

    custody = LedgerCustodyAsset(ledger, "TKN", holder="vesting_custody")
    vault = VestingVault(ledger, custody, minter="treasury", schedule_authority="admin")
    print(f"custody wallet: {vault.custody_wallet}")
    print(f"share unit:     {vault.share_symbol} ({ledger.get_unit(vault.share_symbol).unit_type})")
    print("principals:     minter=treasury, schedule_authority=admin")
    return vault


def step_03_schedule(vault: VestingVault):
    step_header(3, "The Schedule",
        "Commit a cliff, an initial unlock and three periods summing to 10,000 bp.")

    start = CONFIG.start_time
    cliff = start + CONFIG.cliff_delay
    periods = [(cliff + offset, portion) for offset, portion in CONFIG.periods]
    schedule = vault.set_vesting_schedule(
        "admin", start, cliff, CONFIG.initial_unlock_percent, periods)

    print(f"cliff:   day {day_of(schedule.cliff)}  ({schedule.initial_unlock_percent}% unlocks here)")
    for p in schedule.periods:
        print(f"period:  until day {day_of(p.end_time):>3}  {p.portion:>5} bp of the remainder")


def step_04_deposits(ledger: Ledger, vault: VestingVault):
    step_header(4, "Deposits",
        "Lock grants before the cliff. Beneficiaries receive share units they cannot move.")

    vault.deposit("treasury", "alice", CONFIG.alice_grant)
    vault.deposit("treasury", "bob", CONFIG.bob_grant)
    for account in ("alice", "bob"):
        print(f"{account:<6} locked={vault.initial_locked_of(account):>10,}  "
              f"shares={vault.share_balance_of(account):>10,}")
    print(f"custody holds {vault.custody_asset.balance_of('vesting_custody'):,} TKN")

    section_header("Shares are receipts, not assets")
    try:
        vault.transfer("alice", "bob", 1)
    except TransfersNotAllowed as e:
        print(f"transfer refused: {e}")


def step_05_curve(vault: VestingVault):
    step_header(5, "The Unlock Curve",
        "Query alice's unlocked amount at a few points in time.")

    cliff = vault.schedule.cliff
    for days in (-1, 0, 45, 90, 180, 270, 360):
        t = cliff + days * DAY
        print(f"day {day_of(t):>4}: unlocked {vault.unlocked_of('alice', at=t):>10,}")


def step_06_claims(ledger: Ledger, vault: VestingVault):
    step_header(6, "Claims",
        "Advance time and claim. Claiming twice in a row yields nothing new.")

    cliff = vault.schedule.cliff
    ledger.advance_time(cliff + 45 * DAY)
    print(f"day {day_of(ledger.current_time)}: alice claims {vault.claim('alice'):,}")
    try:
        vault.claim("alice")
    except NothingToClaim:
        print("second claim: nothing to claim")

    section_header("The cliff closes deposits")
    try:
        vault.deposit("treasury", "carol", 1_000)
    except CliffElapsed as e:
        print(f"deposit refused: {e}")

    ledger.advance_time(vault.schedule.end_time)
    print(f"day {day_of(ledger.current_time)}: alice claims {vault.claim('alice'):,}")
    print(f"day {day_of(ledger.current_time)}: bob claims   {vault.claim('bob'):,}")


def step_07_guarantees(ledger: Ledger, vault: VestingVault):
    step_header(7, "Guarantees",
        "Check the accounting invariants and double-entry conservation.")

    print(f"vault invariants valid: {vault.verify_invariants()['valid']}")
    check = ledger.verify_double_entry()
    print(f"double entry valid:     {check['valid']}  supplies={check['supplies']}")
    print(f"custody remaining:      {vault.custody_asset.balance_of('vesting_custody')}")
    print(f"events recorded:        {len(vault.event_history)}")


def main():
    configure_logging()
    print("=" * 70)
    print("       VESTING VAULT TUTORIAL")
    print("=" * 70)

    ledger = step_01_ledger()
    wait_for_enter()
    vault = step_02_vault(ledger)
    wait_for_enter()
    step_03_schedule(vault)
    wait_for_enter()
    step_04_deposits(ledger, vault)
    wait_for_enter()
    step_05_curve(vault)
    wait_for_enter()
    step_06_claims(ledger, vault)
    wait_for_enter()
    step_07_guarantees(ledger, vault)

    print("\nNext steps:")
    print("  - See vesting/accrual.py for the unlock formula")
    print("  - Run tests: pytest tests/")


if __name__ == "__main__":
    main()
