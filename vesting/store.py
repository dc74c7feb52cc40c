"""
store.py - Per-beneficiary locked/released accounting

LedgerStore is a plain state container. It holds, per account, the
cumulative amount ever deposited (`initial_locked`) and ever claimed
(`released`), plus the aggregate deposited supply so callers can report
locked/unlocked supply without iterating accounts.

It enforces nothing: amounts are trusted, and the invariant
released <= unlocked <= initial_locked is the vault's responsibility.
Entries are created on first use and never deleted.
"""

from __future__ import annotations
from typing import Dict, List, Any


class LedgerStore:
    """Accounting maps for locked and released amounts."""

    def __init__(self):
        self._initial_locked: Dict[str, int] = {}
        self._released: Dict[str, int] = {}
        self._initial_locked_supply: int = 0
        self._released_supply: int = 0

    def add_locked(self, account: str, amount: int) -> None:
        self._initial_locked[account] = self._initial_locked.get(account, 0) + amount
        self._initial_locked_supply += amount

    def add_released(self, account: str, amount: int) -> None:
        self._released[account] = self._released.get(account, 0) + amount
        self._released_supply += amount

    def locked_of(self, account: str) -> int:
        """Cumulative amount ever deposited for account."""
        return self._initial_locked.get(account, 0)

    def released_of(self, account: str) -> int:
        """Cumulative amount ever claimed by account."""
        return self._released.get(account, 0)

    def total_locked(self) -> int:
        """Sum of initial_locked over all accounts."""
        return self._initial_locked_supply

    def total_released(self) -> int:
        return self._released_supply

    def accounts(self) -> List[str]:
        """Accounts with a ledger entry, sorted for deterministic iteration."""
        return sorted(set(self._initial_locked) | set(self._released))

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data copy of the store, suitable for rollback or JSON."""
        return {
            'initial_locked': dict(self._initial_locked),
            'released': dict(self._released),
            'initial_locked_supply': self._initial_locked_supply,
            'released_supply': self._released_supply,
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Replace the whole store with a snapshot() result."""
        self._initial_locked = dict(snapshot['initial_locked'])
        self._released = dict(snapshot['released'])
        self._initial_locked_supply = snapshot['initial_locked_supply']
        self._released_supply = snapshot['released_supply']

    def __repr__(self) -> str:
        return (f"LedgerStore({len(self._initial_locked)} accounts, "
                f"locked={self._initial_locked_supply}, released={self._released_supply})")
