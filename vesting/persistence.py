"""
persistence.py - Durable vault state

The vault's durable state is small: the committed schedule (and its
version), per-account {initial_locked, released} pairs and the aggregate
counters. snapshot_vault() turns it into plain JSON-ready data with a
content checksum; restore_vault() validates a snapshot and loads it into a
freshly built vault, re-issuing the outstanding share units on the vault's
ledger so share balances match the restored accounting.

Custody balances are not part of the snapshot: they live with the custody
asset, which persists itself.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging

from .config import get_settings
from .core import (
    Move, TransactionOrigin, OriginType, ExecuteResult, SYSTEM_WALLET,
    LedgerError, ScheduleError, StateCorrupted, build_transaction, content_hash, is_integer,
)
from .schedule import Schedule, check_schedule
from .vault import VestingVault

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

PathLike = Union[str, Path]


def snapshot_vault(vault: VestingVault) -> Dict[str, Any]:
    """Plain-data snapshot of a vault's durable state, with checksum."""
    schedule = vault.schedule
    body = {
        'format': FORMAT_VERSION,
        'vault': vault.name,
        'share_symbol': vault.share_symbol,
        'schedule': schedule.to_dict() if schedule is not None else None,
        'schedule_version': vault.schedule_version,
        'store': vault.store.snapshot(),
    }
    return {**body, 'checksum': content_hash(body)}


def _check_state(state: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(state, dict):
        raise StateCorrupted(f"state must be a mapping, got {type(state).__name__}")
    body = {k: v for k, v in state.items() if k != 'checksum'}
    if state.get('checksum') != content_hash(body):
        raise StateCorrupted("checksum mismatch")
    if body.get('format') != FORMAT_VERSION:
        raise StateCorrupted(f"unsupported format {body.get('format')!r}")

    store = body.get('store')
    try:
        locked = store['initial_locked']
        released = store['released']
        locked_supply = store['initial_locked_supply']
        released_supply = store['released_supply']
    except (KeyError, TypeError) as e:
        raise StateCorrupted(f"malformed store: {e}") from e
    for account in set(locked) | set(released):
        a = locked.get(account, 0)
        r = released.get(account, 0)
        if not (is_integer(a) and is_integer(r)) or not 0 <= r <= a:
            raise StateCorrupted(f"{account}: released {r!r} / locked {a!r} out of range")
    if sum(locked.values()) != locked_supply or sum(released.values()) != released_supply:
        raise StateCorrupted("aggregate counters do not match accounts")
    return body


def _restore_schedule(data: Optional[Dict[str, Any]], basis_points: int) -> Optional[Schedule]:
    if data is None:
        return None
    try:
        return check_schedule(Schedule.from_dict(data), basis_points)
    except (KeyError, TypeError, ValueError, ScheduleError) as e:
        raise StateCorrupted(f"invalid schedule: {e}") from e


def restore_vault(vault: VestingVault, state: Dict[str, Any]) -> VestingVault:
    """
    Load a snapshot_vault() result into `vault`.

    The target vault must not hold any deposits yet. Share units for each
    account's outstanding (locked - released) amount are issued on the
    vault's ledger as part of the restore.

    Raises:
        StateCorrupted: checksum, shape or share-symbol mismatch, or a
            schedule that breaks the schedule rules or uses different
            basis_points from the vault.
        LedgerError: target vault already has deposits.
    """
    body = _check_state(state)
    if body['share_symbol'] != vault.share_symbol:
        raise StateCorrupted(
            f"state is for share {body['share_symbol']}, vault uses {vault.share_symbol}"
        )
    if vault.initial_locked_supply() > 0:
        raise LedgerError(f"vault {vault.name} already holds deposits; restore into a fresh vault")

    schedule = _restore_schedule(body['schedule'], vault.basis_points)
    version = body['schedule_version']
    if not is_integer(version) or version < (0 if schedule is None else 1):
        raise StateCorrupted(f"invalid schedule_version {version!r}")
    if schedule is None and body['store']['initial_locked_supply'] > 0:
        raise StateCorrupted("deposits recorded without a schedule")

    with vault._atomic():
        vault.registry.restore(schedule, version)
        vault.store.restore(body['store'])
        for account in vault.store.accounts():
            outstanding = vault.store.locked_of(account) - vault.store.released_of(account)
            if outstanding == 0:
                continue
            vault.ledger.ensure_wallet(account)
            move = Move(outstanding, vault.share_symbol, SYSTEM_WALLET, account,
                        f"{vault.name}:restore:{account}:{len(vault.ledger.transaction_log)}")
            origin = TransactionOrigin(OriginType.SYSTEM, vault.name, vault.share_symbol, "RESTORE")
            result = vault.ledger.execute(build_transaction(vault.ledger, [move], origin))
            if result != ExecuteResult.APPLIED:
                raise LedgerError(
                    f"share restore for {account} failed: {vault.ledger.last_rejection or result.value}"
                )

    logger.info("Restored vault %s: %d accounts, schedule v%d",
                vault.name, len(vault.store.accounts()), vault.schedule_version)
    return vault


def save_vault(vault: VestingVault, path: Optional[PathLike] = None) -> Path:
    """Write snapshot_vault(vault) as JSON; defaults to settings.state_path."""
    target = Path(path if path is not None else get_settings().state_path)
    target.write_text(json.dumps(snapshot_vault(vault), indent=2, sort_keys=True))
    logger.info("Saved vault %s to %s", vault.name, target)
    return target


def load_vault_state(path: Optional[PathLike] = None) -> Dict[str, Any]:
    """
    Read and verify a saved state file.

    Raises:
        StateCorrupted: file is not valid JSON or fails verification.
    """
    source = Path(path if path is not None else get_settings().state_path)
    try:
        state = json.loads(source.read_text())
    except json.JSONDecodeError as e:
        raise StateCorrupted(f"{source}: invalid JSON ({e})") from e
    _check_state(state)
    return state
