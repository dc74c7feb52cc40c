"""
test_store.py - Unit tests for LedgerStore
"""

from vesting import LedgerStore


def test_empty_store():
    store = LedgerStore()
    assert store.locked_of("alice") == 0
    assert store.released_of("alice") == 0
    assert store.total_locked() == 0
    assert store.accounts() == []


def test_add_locked_accumulates():
    store = LedgerStore()
    store.add_locked("alice", 100)
    store.add_locked("alice", 50)
    store.add_locked("bob", 7)
    assert store.locked_of("alice") == 150
    assert store.total_locked() == 157
    assert store.accounts() == ["alice", "bob"]


def test_add_released_accumulates():
    store = LedgerStore()
    store.add_locked("alice", 100)
    store.add_released("alice", 30)
    store.add_released("alice", 20)
    assert store.released_of("alice") == 50
    assert store.total_released() == 50
    assert store.locked_of("alice") == 100


def test_store_enforces_nothing():
    store = LedgerStore()
    store.add_released("carol", 10)
    assert store.released_of("carol") == 10
    assert store.accounts() == ["carol"]


def test_snapshot_restore():
    store = LedgerStore()
    store.add_locked("alice", 100)
    snapshot = store.snapshot()

    store.add_locked("bob", 5)
    store.add_released("alice", 10)
    store.restore(snapshot)

    assert store.accounts() == ["alice"]
    assert store.total_locked() == 100
    assert store.released_of("alice") == 0


def test_snapshot_is_a_copy():
    store = LedgerStore()
    store.add_locked("alice", 100)
    snapshot = store.snapshot()
    store.add_locked("alice", 1)
    assert snapshot['initial_locked'] == {"alice": 100}
    assert snapshot['initial_locked_supply'] == 100


def test_repr():
    store = LedgerStore()
    store.add_locked("alice", 3)
    assert repr(store) == "LedgerStore(1 accounts, locked=3, released=0)"
