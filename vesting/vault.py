"""
vault.py - Vesting vault: schedule commit, deposits and claims

VestingVault ties the pieces together:

    set_vesting_schedule()  validate, then commit the schedule (authority only)
    deposit()               lock funds for a beneficiary before the cliff (minter only)
    claim()                 release whatever has unlocked since the last claim
    transfer()              always refused: share units are receipts, not assets

Every public mutating operation is atomic. It runs inside _atomic(), which
checkpoints the store, the schedule registry, the share ledger and the
event buffer, and restores all of them if anything raises. Inside an
operation the ledger effects always come before the custody call, because
the custody asset may call back into the vault before it returns; a
reentrant call therefore sees the post-effect state (e.g. a nested claim
finds nothing left to claim).
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union
import logging

from .access import Principals, Role, require_role
from .accrual import compute_unlocked, compute_releasable
from .config import VestingSettings, get_settings
from .core import (
    Move, TransactionOrigin, OriginType, ExecuteResult,
    DEFAULT_BASIS_POINTS, SYSTEM_WALLET,
    LedgerError, ScheduleLocked, ScheduleNotSet, CliffElapsed, NothingToClaim,
    InvalidAmount, CustodyTransferFailed, TransfersNotAllowed,
    build_transaction, vesting_share, is_integer,
)
from .custody import CustodyAsset, LedgerCustodyAsset
from .events import EventLog, DepositEvent, ClaimEvent, ScheduleCommitted, VaultEvent, EventListener
from .ledger import Ledger
from .schedule import Period, Schedule, ScheduleRegistry, validate_schedule
from .store import LedgerStore

logger = logging.getLogger(__name__)


class VestingVault:
    """
    Custodial vesting vault over a single custody asset.

    Example:
        ledger = Ledger("main", initial_time=1_700_000_000)
        ledger.register_unit(token("TKN", "Project Token"))
        custody = LedgerCustodyAsset(ledger, "TKN", holder="vesting_custody")
        vault = VestingVault(ledger, custody, minter="treasury",
                             schedule_authority="admin")

        vault.set_vesting_schedule("admin", start, cliff, 10, [(cliff + 100, 10_000)])
        vault.deposit("treasury", "alice", 1_000)
        ledger.advance_time(cliff + 50)
        vault.claim("alice")   # 550
    """

    def __init__(
        self,
        ledger: Ledger,
        custody_asset: CustodyAsset,
        *,
        minter: str,
        schedule_authority: str,
        share_symbol: str = "vLOCK",
        share_name: str = "Vesting Share",
        custody_wallet: str = "vesting_custody",
        basis_points: int = DEFAULT_BASIS_POINTS,
        name: str = "vesting",
    ):
        if not is_integer(basis_points) or basis_points <= 0:
            raise ValueError(f"basis_points must be a positive int, got {basis_points!r}")
        self.name = name
        self.ledger = ledger
        self.custody_asset = custody_asset
        self.custody_wallet = custody_wallet
        self.basis_points = basis_points
        self.principals = Principals(minter=minter, schedule_authority=schedule_authority)

        self.store = LedgerStore()
        self.registry = ScheduleRegistry()
        self.events = EventLog()

        self.share_symbol = share_symbol
        ledger.register_unit(vesting_share(share_symbol, share_name))

        self._depth = 0

    @classmethod
    def from_settings(
        cls,
        ledger: Ledger,
        token_symbol: str,
        *,
        minter: str,
        schedule_authority: str,
        settings: Optional[VestingSettings] = None,
    ) -> VestingVault:
        """Build a vault whose custody asset is `token_symbol` on `ledger`."""
        settings = settings or get_settings()
        custody = LedgerCustodyAsset(ledger, token_symbol, settings.custody_wallet)
        return cls(
            ledger,
            custody,
            minter=minter,
            schedule_authority=schedule_authority,
            share_symbol=settings.share_symbol,
            share_name=settings.share_name,
            custody_wallet=settings.custody_wallet,
            basis_points=settings.basis_points,
            name=settings.vault_name,
        )

    # ========================================================================
    # READ-ONLY VIEWS
    # ========================================================================

    @property
    def now(self) -> int:
        return self.ledger.current_time

    @property
    def schedule(self) -> Optional[Schedule]:
        return self.registry.snapshot()

    @property
    def schedule_version(self) -> int:
        return self.registry.version

    @property
    def event_history(self) -> List[VaultEvent]:
        return list(self.events.history)

    def initial_locked_of(self, account: str) -> int:
        return self.store.locked_of(account)

    def released_of(self, account: str) -> int:
        return self.store.released_of(account)

    def unlocked_of(self, account: str, at: Optional[int] = None) -> int:
        """Amount of account's deposits unlocked at `at` (default: now)."""
        return self._unlocked(self.store.locked_of(account), at)

    def locked_of(self, account: str, at: Optional[int] = None) -> int:
        """Amount of account's deposits still locked at `at`."""
        return self.store.locked_of(account) - self.unlocked_of(account, at)

    def releasable_of(self, account: str, at: Optional[int] = None) -> int:
        """Unlocked amount account could claim at `at`."""
        schedule = self.registry.snapshot()
        if schedule is None:
            return 0
        return compute_releasable(
            self.store.locked_of(account), self.store.released_of(account),
            schedule, self.now if at is None else at,
        )

    def initial_locked_supply(self) -> int:
        return self.store.total_locked()

    def released_supply(self) -> int:
        return self.store.total_released()

    def unlocked_supply(self, at: Optional[int] = None) -> int:
        """Aggregate unlocked amount, computed on the total deposited supply."""
        return self._unlocked(self.store.total_locked(), at)

    def locked_supply(self, at: Optional[int] = None) -> int:
        return self.store.total_locked() - self.unlocked_supply(at)

    def share_balance_of(self, account: str) -> int:
        if not self.ledger.is_registered(account):
            return 0
        return self.ledger.get_balance(account, self.share_symbol)

    def subscribe(self, listener: EventListener) -> None:
        """Register a callback for committed notifications."""
        self.events.subscribe(listener)

    def _unlocked(self, amount: int, at: Optional[int]) -> int:
        schedule = self.registry.snapshot()
        if schedule is None:
            return 0
        return compute_unlocked(amount, schedule, self.now if at is None else at)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def set_vesting_schedule(
        self,
        caller: str,
        start_time: int,
        cliff: int,
        initial_unlock_percent: int,
        periods: Iterable[Union[Period, Tuple[int, int], dict]],
    ) -> Schedule:
        """
        Validate and commit the unlock schedule.

        A commit replaces any earlier schedule. Once funds have been
        deposited the schedule is frozen.

        Raises:
            Unauthorized: caller is not the schedule authority.
            ScheduleLocked: deposits already exist.
            ScheduleError subclasses: see validate_schedule().
        """
        require_role(self.principals, caller, Role.SCHEDULE_AUTHORITY)
        if self.store.total_locked() > 0:
            raise ScheduleLocked(
                f"schedule is frozen: {self.store.total_locked()} already deposited"
            )
        schedule = validate_schedule(
            start_time, cliff, initial_unlock_percent, periods,
            now=self.now, basis_points=self.basis_points,
        )
        with self._atomic():
            version = self.registry.commit(schedule)
            self.events.emit(ScheduleCommitted(version, schedule, self.now))
        return schedule

    def deposit(self, caller: str, beneficiary: str, amount: int) -> None:
        """
        Lock `amount` of the custody asset for `beneficiary`.

        Order: ledger entry, notification, custody transfer-in from the
        caller, share issuance to the beneficiary.

        Raises:
            Unauthorized: caller is not the minter.
            ScheduleNotSet: no schedule committed yet.
            InvalidAmount: amount is not a positive int.
            CliffElapsed: the cliff has been reached.
            CustodyTransferFailed: the custody asset refused the transfer.
        """
        require_role(self.principals, caller, Role.MINTER)
        schedule = self._require_schedule()
        if not is_integer(amount) or amount <= 0:
            raise InvalidAmount(f"deposit amount must be a positive int, got {amount!r}")
        if (not isinstance(beneficiary, str) or not beneficiary.strip()
                or beneficiary == SYSTEM_WALLET):
            raise ValueError(f"invalid beneficiary {beneficiary!r}")
        now = self.now
        if now >= schedule.cliff:
            raise CliffElapsed(f"cliff {schedule.cliff} reached at {now}; deposits closed")

        with self._atomic():
            self.ledger.ensure_wallet(beneficiary)
            self.store.add_locked(beneficiary, amount)
            self.events.emit(DepositEvent(self.custody_asset.address, beneficiary, amount, now))
            if not self.custody_asset.transfer_from(caller, self.custody_wallet, amount):
                raise CustodyTransferFailed(
                    f"transfer_from({caller}, {self.custody_wallet}, {amount}) failed"
                )
            self._move_shares(SYSTEM_WALLET, beneficiary, amount, OriginType.DEPOSIT, "ISSUE")

        logger.info("Deposit: %d %s locked for %s", amount, self.custody_asset.address, beneficiary)

    def claim(self, caller: str) -> int:
        """
        Release everything unlocked for `caller` and not yet released.

        Order: ledger entry, share burn, notification, custody transfer-out.

        Returns:
            The amount released.

        Raises:
            NothingToClaim: nothing is releasable right now.
            CustodyTransferFailed: the custody asset refused the transfer.
        """
        schedule = self.registry.snapshot()
        now = self.now
        releasable = 0
        if schedule is not None:
            releasable = compute_unlocked(self.store.locked_of(caller), schedule, now) \
                - self.store.released_of(caller)
        if releasable <= 0:
            raise NothingToClaim(f"nothing to claim for {caller} at {now}")

        with self._atomic():
            self.store.add_released(caller, releasable)
            self._move_shares(caller, SYSTEM_WALLET, releasable, OriginType.CLAIM, "BURN")
            self.events.emit(ClaimEvent(self.custody_asset.address, caller, releasable, now))
            if not self.custody_asset.transfer(caller, releasable):
                raise CustodyTransferFailed(f"transfer({caller}, {releasable}) failed")

        logger.info("Claim: %d %s released to %s", releasable, self.custody_asset.address, caller)
        return releasable

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Share units cannot change hands.

        Raises:
            TransfersNotAllowed: always.
        """
        raise TransfersNotAllowed(
            f"{self.share_symbol}: cannot transfer {amount!r} from {sender} to {recipient}; "
            f"issuance and redemption only happen through deposit and claim"
        )

    # ========================================================================
    # INVARIANTS
    # ========================================================================

    def verify_invariants(self, at: Optional[int] = None) -> Dict[str, Any]:
        """
        Check the accounting invariants for every account.

        - released <= unlocked <= initial_locked
        - share balance == initial_locked - released
        - aggregate counters == sum over accounts

        Returns:
            Dict with 'valid' (bool) and 'discrepancies' (list of dicts).
        """
        discrepancies = []
        total_locked = 0
        total_released = 0
        for account in self.store.accounts():
            locked = self.store.locked_of(account)
            released = self.store.released_of(account)
            unlocked = self.unlocked_of(account, at)
            shares = self.share_balance_of(account)
            total_locked += locked
            total_released += released
            if not released <= unlocked <= locked:
                discrepancies.append({
                    'account': account, 'check': 'released<=unlocked<=locked',
                    'released': released, 'unlocked': unlocked, 'locked': locked,
                })
            if shares != locked - released:
                discrepancies.append({
                    'account': account, 'check': 'shares==locked-released',
                    'shares': shares, 'expected': locked - released,
                })
        if total_locked != self.store.total_locked():
            discrepancies.append({
                'check': 'initial_locked_supply', 'expected': total_locked,
                'actual': self.store.total_locked(),
            })
        if total_released != self.store.total_released():
            discrepancies.append({
                'check': 'released_supply', 'expected': total_released,
                'actual': self.store.total_released(),
            })
        return {'valid': not discrepancies, 'discrepancies': discrepancies}

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_schedule(self) -> Schedule:
        schedule = self.registry.snapshot()
        if schedule is None:
            raise ScheduleNotSet("no vesting schedule committed")
        return schedule

    def _move_shares(self, source: str, dest: str, amount: int,
                     origin_type: OriginType, event_type: str) -> None:
        # The log length is unique per ledger state, so equal moves never share an intent id
        seq = len(self.ledger.transaction_log)
        move = Move(amount, self.share_symbol, source, dest,
                    f"{self.name}:{event_type.lower()}:{seq}")
        origin = TransactionOrigin(origin_type, self.name, self.share_symbol, event_type)
        result = self.ledger.execute(build_transaction(self.ledger, [move], origin))
        if result != ExecuteResult.APPLIED:
            raise LedgerError(
                f"share {event_type.lower()} of {amount} for {source}->{dest} failed: "
                f"{self.ledger.last_rejection or result.value}"
            )

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        """
        All-or-nothing scope for one operation.

        Nested (reentrant) operations get their own scope; notifications
        are published once the outermost scope commits.
        """
        store_cp = self.store.snapshot()
        registry_cp = (self.registry.snapshot(), self.registry.version)
        ledger_cp = self.ledger.checkpoint()
        mark = self.events.mark()
        self._depth += 1
        try:
            yield
        except Exception:
            self.store.restore(store_cp)
            self.registry.restore(*registry_cp)
            self.ledger.rollback(ledger_cp)
            self.events.discard(mark)
            logger.debug("Operation rolled back in vault %s", self.name)
            raise
        finally:
            self._depth -= 1
        if self._depth == 0:
            self.events.publish()
