"""
vesting - Time-based token vesting vault

Deposits are locked for a beneficiary and unlock piecewise over time:
nothing before the cliff, an initial percentage at the cliff, then
linearly across ordered periods until everything is unlocked.

Usage:
    from vesting import Ledger, token, LedgerCustodyAsset, VestingVault
    from vesting import Move, build_transaction, SYSTEM_WALLET

    ledger = Ledger("main", initial_time=1_700_000_000)
    ledger.register_unit(token("TKN", "Project Token"))
    ledger.register_wallet("treasury")
    ledger.execute(build_transaction(ledger, [
        Move(1_000_000, "TKN", SYSTEM_WALLET, "treasury", "initial_supply")
    ]))

    custody = LedgerCustodyAsset(ledger, "TKN", holder="vesting_custody")
    vault = VestingVault(ledger, custody, minter="treasury", schedule_authority="admin")

    start = ledger.current_time
    vault.set_vesting_schedule("admin", start, start + 100, 10,
                               [(start + 200, 5_000), (start + 300, 5_000)])
    vault.deposit("treasury", "alice", 1_000)

    ledger.advance_time(start + 150)
    vault.claim("alice")   # 325
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    content_hash,
    Unit,
    ExecuteResult,
    LedgerError,
    InsufficientFunds,
    BalanceConstraintViolation,
    TransferRuleViolation,
    TransfersNotAllowed,
    UnitNotRegistered,
    WalletNotRegistered,
    Unauthorized,
    ScheduleError,
    StartTimeInPast,
    CliffBeforeStart,
    PercentOutOfRange,
    PeriodOutOfOrder,
    PeriodBeforeCliff,
    PortionOutOfRange,
    PortionMismatch,
    ScheduleLocked,
    ScheduleNotSet,
    VaultStateError,
    CliffElapsed,
    NothingToClaim,
    InvalidAmount,
    CustodyTransferFailed,
    StateCorrupted,
    share_transfer_rule,
    token,
    vesting_share,
    SYSTEM_WALLET,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_VESTING_SHARE,
    DEFAULT_BASIS_POINTS,
)

# Ledger
from .ledger import Ledger, LedgerCheckpoint

# Schedule and accrual
from .schedule import Period, Schedule, ScheduleRegistry, validate_schedule, check_schedule
from .accrual import compute_unlocked, compute_releasable

# Vault
from .store import LedgerStore
from .access import Role, Principals, require_principal, require_role
from .events import DepositEvent, ClaimEvent, ScheduleCommitted, EventLog
from .custody import CustodyAsset, LedgerCustodyAsset
from .vault import VestingVault

# Config, persistence, pricing
from .config import VestingSettings, get_settings, configure_logging
from .persistence import snapshot_vault, restore_vault, save_vault, load_vault_state
from .pricing_source import PriceFeed, StaticPriceFeed, TimeSeriesPriceFeed, latest_price

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction', 'TransactionOrigin', 'OriginType',
    'build_transaction', 'content_hash', 'Unit', 'ExecuteResult',
    'LedgerError', 'InsufficientFunds', 'BalanceConstraintViolation',
    'TransferRuleViolation', 'TransfersNotAllowed', 'UnitNotRegistered', 'WalletNotRegistered',
    'Unauthorized',
    'ScheduleError', 'StartTimeInPast', 'CliffBeforeStart', 'PercentOutOfRange',
    'PeriodOutOfOrder', 'PeriodBeforeCliff', 'PortionOutOfRange', 'PortionMismatch',
    'ScheduleLocked', 'ScheduleNotSet',
    'VaultStateError', 'CliffElapsed', 'NothingToClaim', 'InvalidAmount',
    'CustodyTransferFailed', 'StateCorrupted',
    'share_transfer_rule', 'token', 'vesting_share',
    'SYSTEM_WALLET', 'UNIT_TYPE_TOKEN', 'UNIT_TYPE_VESTING_SHARE', 'DEFAULT_BASIS_POINTS',
    # Ledger
    'Ledger', 'LedgerCheckpoint',
    # Schedule and accrual
    'Period', 'Schedule', 'ScheduleRegistry', 'validate_schedule', 'check_schedule',
    'compute_unlocked', 'compute_releasable',
    # Vault
    'LedgerStore', 'Role', 'Principals', 'require_principal', 'require_role',
    'DepositEvent', 'ClaimEvent', 'ScheduleCommitted', 'EventLog',
    'CustodyAsset', 'LedgerCustodyAsset', 'VestingVault',
    # Config
    'VestingSettings', 'get_settings', 'configure_logging',
    # Persistence
    'snapshot_vault', 'restore_vault', 'save_vault', 'load_vault_state',
    # Pricing
    'PriceFeed', 'StaticPriceFeed', 'TimeSeriesPriceFeed', 'latest_price',
]

__version__ = '1.0.0'
