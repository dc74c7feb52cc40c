"""
events.py - Vault notifications

Events are immutable records. Operations emit() into a pending buffer; the
buffer is published to the log and to subscribers only when the outermost
operation commits, and is dropped when it rolls back. A reverted deposit
therefore leaves no notification behind.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Union
import logging

from .schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DepositEvent:
    """Locked deposit admitted for a beneficiary."""
    custody_asset: str
    beneficiary: str
    amount: int
    timestamp: int

    @property
    def event_id(self) -> str:
        return f"deposit:{self.custody_asset}:{self.beneficiary}:{self.amount}:{self.timestamp}"


@dataclass(frozen=True, slots=True)
class ClaimEvent:
    """Unlocked amount released to an account."""
    custody_asset: str
    account: str
    amount: int
    timestamp: int

    @property
    def event_id(self) -> str:
        return f"claim:{self.custody_asset}:{self.account}:{self.amount}:{self.timestamp}"


@dataclass(frozen=True, slots=True)
class ScheduleCommitted:
    """A schedule became the vault's active schedule."""
    version: int
    schedule: Schedule
    timestamp: int

    @property
    def event_id(self) -> str:
        return f"schedule:{self.version}:{self.timestamp}"


VaultEvent = Union[DepositEvent, ClaimEvent, ScheduleCommitted]

# Listener type: called synchronously with each committed event
EventListener = Callable[[VaultEvent], None]


class EventLog:
    """Committed event history plus the buffer of the running operation."""

    def __init__(self):
        self.history: List[VaultEvent] = []
        self._pending: List[VaultEvent] = []
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: VaultEvent) -> None:
        """Queue an event for delivery when the running operation commits."""
        self._pending.append(event)

    def mark(self) -> int:
        """Position in the pending buffer, for a later discard()."""
        return len(self._pending)

    def discard(self, mark: int) -> None:
        """Drop events queued after mark."""
        del self._pending[mark:]

    def publish(self) -> None:
        """
        Move pending events to history and notify subscribers.

        The whole batch reaches history before any listener runs. The
        operation has already committed, so a listener that raises is
        logged and skipped; it never reaches the caller.
        """
        pending, self._pending = self._pending, []
        self.history.extend(pending)
        for event in pending:
            logger.debug("Event %s", event.event_id)
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception("Listener %r failed on event %s", listener, event.event_id)
