"""
custody.py - Custody asset interface

The vault never touches the underlying asset's balances directly. It talks
to a CustodyAsset collaborator with two calls:

    transfer_from(payer, custody, amount) -> bool   (deposit, asset in)
    transfer(recipient, amount) -> bool             (claim, asset out)

A False return or an exception means the transfer did not happen. Either
call may synchronously run arbitrary code (a hook, a token callback) that
calls back into the vault before returning.

LedgerCustodyAsset adapts a token unit on a Ledger to this interface.
"""

from __future__ import annotations
from typing import Protocol, runtime_checkable
import logging

from .core import (
    Move, TransactionOrigin, OriginType, ExecuteResult,
    build_transaction,
)
from .ledger import Ledger

logger = logging.getLogger(__name__)


@runtime_checkable
class CustodyAsset(Protocol):
    """External fungible asset held in custody by the vault."""

    @property
    def address(self) -> str:
        """Identifier of the asset, reported in deposit notifications."""
        ...

    def transfer_from(self, payer: str, custody: str, amount: int) -> bool:
        """Move amount from payer into custody."""
        ...

    def transfer(self, recipient: str, amount: int) -> bool:
        """Move amount from custody to recipient."""
        ...


class LedgerCustodyAsset:
    """
    CustodyAsset backed by a token unit on a Ledger.

    `holder` is the custody wallet that transfer() pays out of. Each
    transfer is one atomic ledger transaction; a rejected transaction is
    reported as False, with the reason in `ledger.last_rejection`.
    """

    def __init__(self, ledger: Ledger, unit_symbol: str, holder: str):
        ledger.get_unit(unit_symbol)
        self.ledger = ledger
        self.unit_symbol = unit_symbol
        self.holder = ledger.ensure_wallet(holder)
        self._nonce = 0

    @property
    def address(self) -> str:
        return self.unit_symbol

    def transfer_from(self, payer: str, custody: str, amount: int) -> bool:
        return self._move(payer, custody, amount, "transfer_from")

    def transfer(self, recipient: str, amount: int) -> bool:
        self.ledger.ensure_wallet(recipient)
        return self._move(self.holder, recipient, amount, "transfer")

    def balance_of(self, wallet: str) -> int:
        if not self.ledger.is_registered(wallet):
            return 0
        return self.ledger.get_balance(wallet, self.unit_symbol)

    def _move(self, source: str, dest: str, amount: int, kind: str) -> bool:
        # Unique contract id per call so equal transfers are not deduplicated
        self._nonce += 1
        move = Move(amount, self.unit_symbol, source, dest, f"custody:{kind}:{self._nonce}")
        origin = TransactionOrigin(OriginType.CUSTODY, self.holder, self.unit_symbol, kind.upper())
        result = self.ledger.execute(build_transaction(self.ledger, [move], origin))
        if result != ExecuteResult.APPLIED:
            logger.info("Custody %s of %d %s refused: %s",
                        kind, amount, self.unit_symbol, self.ledger.last_rejection)
            return False
        return True
