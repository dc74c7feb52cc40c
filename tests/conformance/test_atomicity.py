"""
Atomicity Conformance Tests

INVARIANT: Vault operations are all-or-nothing.

    ∀ operation O on vault V:
        O succeeds ⟹ all of O's effects are applied and notified
        O fails    ⟹ V's accounting, ledger balances and event history are unchanged

Partial application is impossible by construction.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from vesting import (
    Ledger, LedgerCustodyAsset, LedgerError, Move, SYSTEM_WALLET, VestingVault,
    build_transaction, token,
)

T0 = 1_000_000
ACCOUNTS = ["alice", "bob", "carol"]


def _build():
    ledger = Ledger("atomicity", initial_time=T0)
    ledger.register_unit(token("TKN", "Project Token"))
    ledger.register_wallet("treasury")
    ledger.execute(build_transaction(ledger, [
        Move(10_000, "TKN", SYSTEM_WALLET, "treasury", "issue")
    ]))
    custody = LedgerCustodyAsset(ledger, "TKN", holder="vesting_custody")
    vault = VestingVault(ledger, custody, minter="treasury", schedule_authority="admin")
    vault.set_vesting_schedule("admin", T0, T0 + 100, 20, [(T0 + 200, 4_000), (T0 + 400, 6_000)])
    return ledger, vault


def _state(ledger, vault):
    return (
        vault.store.snapshot(),
        vault.schedule_version,
        {w: {u: q for u, q in ledger.get_wallet_balances(w).items() if q}
         for w in sorted(ledger.list_wallets())},
        len(ledger.transaction_log),
        len(vault.event_history),
    )


operations = st.lists(
    st.one_of(
        st.tuples(st.just("deposit"), st.sampled_from(ACCOUNTS + ["mallory"]),
                  st.sampled_from(ACCOUNTS), st.integers(-5, 4_000)),
        st.tuples(st.just("claim"), st.sampled_from(ACCOUNTS)),
        st.tuples(st.just("transfer"), st.sampled_from(ACCOUNTS), st.sampled_from(ACCOUNTS)),
        st.tuples(st.just("schedule"), st.sampled_from(["admin", "mallory"])),
        st.tuples(st.just("advance"), st.integers(0, 120)),
    ),
    max_size=25,
)


class TestAtomicityProperties:

    @given(operations)
    @settings(max_examples=150, deadline=None)
    def test_failed_operations_leave_no_trace(self, ops):
        ledger, vault = _build()
        for op in ops:
            if op[0] == "advance":
                ledger.advance_time(ledger.current_time + op[1])
                continue
            before = _state(ledger, vault)
            try:
                if op[0] == "deposit":
                    _, caller, beneficiary, amount = op
                    vault.deposit("treasury" if caller != "mallory" else caller, beneficiary, amount)
                elif op[0] == "claim":
                    vault.claim(op[1])
                elif op[0] == "transfer":
                    vault.transfer(op[1], op[2], 1)
                else:
                    vault.set_vesting_schedule(op[1], ledger.current_time, ledger.current_time + 1,
                                               0, [(ledger.current_time + 2, 10_000)])
            except (LedgerError, ValueError):
                assert _state(ledger, vault) == before
            assert vault.verify_invariants()['valid']

    @given(st.integers(1, 5_000))
    @settings(max_examples=50, deadline=None)
    def test_refused_payout_reverts_claim(self, amount):
        ledger, vault = _build()
        vault.deposit("treasury", "alice", min(amount, 10_000))
        ledger.advance_time(T0 + 500)

        original = vault.custody_asset.transfer
        vault.custody_asset.transfer = lambda recipient, qty: False
        before = _state(ledger, vault)
        try:
            vault.claim("alice")
        except LedgerError:
            pass
        finally:
            vault.custody_asset.transfer = original

        assert _state(ledger, vault) == before
        assert vault.claim("alice") == min(amount, 10_000)
