"""
access.py - Role guards for privileged vault operations

Principals are fixed when the vault is built. Each privileged operation
calls a guard that compares the caller's identity with the stored
principal; guards are plain functions so they compose with any operation.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging

from .core import Unauthorized

logger = logging.getLogger(__name__)


class Role(Enum):
    """Privileged roles of a vesting vault."""
    MINTER = "minter"
    SCHEDULE_AUTHORITY = "schedule_authority"


@dataclass(frozen=True, slots=True)
class Principals:
    """Identities allowed to act in each role."""
    minter: str
    schedule_authority: str

    def __post_init__(self):
        if not self.minter or not self.minter.strip():
            raise ValueError("minter cannot be empty")
        if not self.schedule_authority or not self.schedule_authority.strip():
            raise ValueError("schedule_authority cannot be empty")

    def holder_of(self, role: Role) -> str:
        if role is Role.MINTER:
            return self.minter
        return self.schedule_authority


def require_principal(caller: str, principal: str, role: Role) -> None:
    """
    Raise Unauthorized unless caller is the principal for role.

    Raises:
        Unauthorized: If caller differs from principal.
    """
    if caller != principal:
        logger.warning(
            "Access denied: %s is not the %s",
            caller, role.value,
            extra={"event": "access_control.denied", "role": role.value},
        )
        raise Unauthorized(f"{caller} is not the {role.value}")


def require_role(principals: Principals, caller: str, role: Role) -> None:
    """Guard for `role` against the configured principals."""
    require_principal(caller, principals.holder_of(role), role)
