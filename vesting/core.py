"""
Core types and pure functions for the vesting ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: Move, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError and the vesting error taxonomy
4. Type aliases: Positions, BalanceMap
5. Transfer rules: Pure validation functions for moves
6. Unit factories: Functions to create the custody token and share units

Quantities are integer base units and timestamps are integer Unix seconds.
All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
import hashlib
from typing import (
    Dict, List, Set, Optional, Callable, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption (the null account).
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Unit type constants (plain strings).
UNIT_TYPE_TOKEN = "TOKEN"
UNIT_TYPE_VESTING_SHARE = "VESTING_SHARE"

# Default precision denominator for schedule portions.
DEFAULT_BASIS_POINTS = 10_000

# Upper bound for the immediate unlock at the cliff, in whole percent.
MAX_INITIAL_UNLOCK_PERCENT = 100


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]


def is_integer(value: Any) -> bool:
    """True for int values, excluding bool."""
    return isinstance(value, int) and not isinstance(value, bool)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Transfer rules and valuation functions use this protocol to query ledger
    state without the ability to modify it. The Ledger class implements this
    protocol but also provides mutation methods.
    """

    @property
    def current_time(self) -> int:
        """Return the current logical time of the ledger (Unix seconds)."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Return the balance of a specific unit in a wallet.

        Returns 0 if the wallet holds nothing of this unit.
        """
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was successfully validated and applied to the ledger.
    ALREADY_APPLIED: Transaction ID was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation due to insufficient funds, balance
              constraints, or transfer rule violations.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """
    Classification of where a transaction originated.

    Used for audit trails and reconciliation.
    """
    USER_ACTION = "user_action"           # Manual user-initiated transaction
    DEPOSIT = "deposit"                   # Vault deposit (custody in, share issuance)
    CLAIM = "claim"                       # Vault claim (share burn, custody out)
    CUSTODY = "custody"                   # Custody asset transfer
    SYSTEM = "system"                     # System operations (issuance, initial setup)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a move would cause a wallet balance to fall below the unit's minimum."""
    pass


class BalanceConstraintViolation(LedgerError):
    """Raised when a move would cause a wallet balance to violate the unit's min/max constraints."""
    pass


class TransferRuleViolation(LedgerError):
    """Raised when a move violates the unit's transfer rule."""
    pass


class TransfersNotAllowed(TransferRuleViolation):
    """Raised when vesting share units are moved between two non-null accounts."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class Unauthorized(LedgerError):
    """Raised when the caller is not the principal designated for an operation."""
    pass


class ScheduleError(LedgerError):
    """Base class for vesting schedule configuration errors."""
    pass


class StartTimeInPast(ScheduleError):
    pass


class CliffBeforeStart(ScheduleError):
    pass


class PercentOutOfRange(ScheduleError):
    pass


class PeriodOutOfOrder(ScheduleError):
    pass


class PeriodBeforeCliff(ScheduleError):
    pass


class PortionOutOfRange(ScheduleError):
    pass


class PortionMismatch(ScheduleError):
    pass


class ScheduleLocked(ScheduleError):
    """Raised when the schedule is re-committed after funds were deposited."""
    pass


class ScheduleNotSet(ScheduleError):
    """Raised when a deposit or claim runs before any schedule was committed."""
    pass


class VaultStateError(LedgerError):
    """Base class for operations refused because of the vault's current state."""
    pass


class CliffElapsed(VaultStateError):
    pass


class NothingToClaim(VaultStateError):
    pass


class InvalidAmount(VaultStateError):
    pass


class CustodyTransferFailed(VaultStateError):
    """Raised when the custody asset reports a failed transfer."""
    pass


class StateCorrupted(LedgerError):
    """Raised when persisted vault state fails its checksum or shape checks."""
    pass


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source (DEPOSIT, CLAIM, CUSTODY, ...)
        source_id: Identifier of the specific source (vault name, caller, ...)
        unit_symbol: Symbol of the unit that triggered this (if applicable)
        event_type: Specific event within the source (e.g., "ISSUE", "BURN")
    """
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.unit_symbol:
            parts.append(f"unit={self.unit_symbol}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer, in integer base units (must be positive).
        unit_symbol: The symbol of the unit being transferred (e.g., "TKN").
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the operation generating this move.
        metadata: Optional additional information about the move.

    This class is immutable (frozen=True) and memory-optimized (slots=True).
    All fields are validated in __post_init__.
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    contract_id: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if not is_integer(self.quantity):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Output is independent of dict insertion order and of nesting depth, so it
    is suitable for content-addressable hashing of transactions and of
    persisted vault state.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return f"D:{format(value.normalize(), 'f')}"
    if isinstance(value, (int, float)):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if isinstance(value, set):
        serialized = ",".join(_canonicalize(item) for item in sorted(value, key=str))
        return f"<{serialized}>"
    return f"R:{repr(value)}"


def content_hash(value: Any) -> str:
    """Short SHA-256 digest of the canonical form of value."""
    return hashlib.sha256(_canonicalize(value).encode()).hexdigest()[:16]


def _compute_intent_id(moves: Tuple[Move, ...], origin: TransactionOrigin) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    The hash covers the moves and the origin only, never timestamps or
    ledger-specific data, so the same inputs always produce the same id.
    Used for idempotency checking: prevents duplicate business transactions.
    """
    sorted_moves = sorted(
        moves,
        key=lambda m: (m.quantity, m.unit_symbol, m.source, m.dest, m.contract_id)
    )
    content = {
        "origin": [origin.origin_type.value, origin.source_id,
                   origin.unit_symbol, origin.event_type],
        "moves": [
            [m.quantity, m.unit_symbol, m.source, m.dest, m.contract_id]
            for m in sorted_moves
        ],
    }
    return content_hash(content)


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction specification before execution - represents INTENT.

    Lifecycle:
    1. A caller creates a PendingTransaction with moves, origin, timestamp
    2. intent_id is auto-computed from content (deterministic hash)
    3. Ledger.execute() validates and executes, creating a Transaction record

    Attributes:
        moves: Tuple of value transfers between wallets
        origin: Who/what created this transaction and why
        timestamp: When this pending transaction was created (ledger time)
        intent_id: Content-addressable hash of the transaction intent (auto-computed)
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: int
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(self, 'intent_id', _compute_intent_id(self.moves, self.origin))

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves."""
        return not self.moves

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves.

    Args:
        view: Read-only ledger view (provides current_time)
        moves: List of moves to include in the transaction
        origin: Transaction origin (defaults to USER_ACTION origin)

    Returns:
        A PendingTransaction ready for execution
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.USER_ACTION,
            source_id="user",
        )

    return PendingTransaction(
        moves=tuple(moves),
        origin=origin,
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger balance changes - represents FACT.

    Attributes:
        moves: Tuple of value transfers between wallets
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was created
        intent_id: Content hash from PendingTransaction (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        sequence_number: Monotonic sequence within the ledger (for ordering)
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: int
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: int
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        moves = ", ".join(repr(m) for m in self.moves)
        return f"Transaction({self.exec_id}, {self.origin}, [{moves}])"


# Type alias for transfer rule functions.
# Transfer rules validate moves and raise TransferRuleViolation if invalid.
TransferRule = Callable[[LedgerView, Move], None]


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a unit (asset type) in the ledger.

    Attributes:
        symbol: Short identifier for the unit (e.g., "TKN", "vTKN").
        name: Human-readable name for the unit.
        unit_type: Category of the unit (TOKEN, VESTING_SHARE).
        min_balance: Minimum allowed balance in any non-system wallet.
        max_balance: Maximum allowed balance in any wallet (None = unbounded).
        transfer_rule: Optional function to validate moves involving this unit.
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: int = 0
    max_balance: Optional[int] = None
    transfer_rule: Optional[TransferRule] = None


# ============================================================================
# TRANSFER RULES
# ============================================================================

def share_transfer_rule(view: LedgerView, move: Move) -> None:
    """
    Allow vesting share units to be issued or redeemed, never transferred.

    Share units are an accounting receipt for a locked position. A move is
    accepted only when the system wallet (the null account) is on one side
    of it: system -> holder is issuance, holder -> system is redemption.

    Raises:
        TransfersNotAllowed: If neither side of the move is the system wallet.
    """
    if move.source == SYSTEM_WALLET or move.dest == SYSTEM_WALLET:
        return
    raise TransfersNotAllowed(
        f"{move.unit_symbol}: transfers not allowed ({move.source} -> {move.dest})"
    )


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def token(symbol: str, name: str) -> Unit:
    """
    Create a fungible token unit, used as the custody asset.

    Args:
        symbol: Token symbol (e.g., "TKN").
        name: Full name of the token.

    Returns:
        A freely transferable Unit whose balances may not go negative.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_TOKEN,
    )


def vesting_share(symbol: str, name: str) -> Unit:
    """
    Create a non-transferable vesting share unit.

    Share units mirror each beneficiary's still-unclaimed locked position.
    They can only be minted from or burned to the system wallet.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_VESTING_SHARE,
        transfer_rule=share_transfer_rule,
    )
