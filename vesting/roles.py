"""
roles.py - Owner and Project Role Capabilities

RoleAuthority holds the two identities every vesting contract consults:

    owner           administrative authority (emergency release, recovery);
                    transferable, renounceable to ZERO_ADDRESS, never restorable
    project_wallet  the project role (allocations, activation, claiming on
                    behalf of users); transferable only by its holder, never empty

Contracts compose a RoleAuthority and call its require_* checks at the top of
each operation. Capabilities never come from class inheritance.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .core import (
    ZERO_ADDRESS,
    Unauthorized, OnlyProjectOrSender, ZeroAddress, SameAddress,
)


class Role(Enum):
    """The capabilities a caller can hold."""
    OWNER = "owner"
    PROJECT = "project"


@dataclass
class RoleAuthority:
    """
    Mutable holder of the owner and project-role identities.

    Attributes:
        owner: Current owner, or ZERO_ADDRESS once renounced
        project_wallet: Current holder of the project role
        linked: Single-role deployments; the project role always follows
                the owner (and is lost with it on renounce)
    """
    owner: str
    project_wallet: str
    linked: bool = False

    def __post_init__(self) -> None:
        if not self.project_wallet:
            raise ZeroAddress("project wallet cannot be the zero address")
        if not self.owner:
            raise ZeroAddress("owner cannot be the zero address")
        if self.linked and self.project_wallet != self.owner:
            raise ValueError("linked roles must start with owner == project_wallet")

    @classmethod
    def single(cls, admin: str) -> RoleAuthority:
        """One identity holding both roles."""
        return cls(owner=admin, project_wallet=admin, linked=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_role(self, caller: str, role: Role) -> bool:
        if not caller:
            return False
        if role is Role.OWNER:
            return caller == self.owner
        return caller == self.project_wallet

    @property
    def is_renounced(self) -> bool:
        return self.owner == ZERO_ADDRESS

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def require_owner(self, caller: str) -> None:
        """Raise Unauthorized unless caller is the (non-renounced) owner."""
        if not self.has_role(caller, Role.OWNER):
            raise Unauthorized(f"{caller!r} is not the owner")

    def require_project_role(self, caller: str) -> None:
        """Raise Unauthorized unless caller holds the project role."""
        if not self.has_role(caller, Role.PROJECT):
            raise Unauthorized(f"{caller!r} does not hold the project role")

    def require_project_or_sender(self, caller: str, beneficiary: str) -> None:
        """Raise OnlyProjectOrSender unless caller is the beneficiary or the project role."""
        if not caller or (caller != beneficiary and not self.has_role(caller, Role.PROJECT)):
            raise OnlyProjectOrSender(
                f"{caller!r} cannot act for {beneficiary!r}"
            )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        """
        Hand ownership to new_owner.

        Returns:
            The previous owner

        Raises:
            Unauthorized: If caller is not the owner
            ZeroAddress: If new_owner is empty
        """
        self.require_owner(caller)
        if not new_owner:
            raise ZeroAddress("new owner cannot be the zero address")
        previous, self.owner = self.owner, new_owner
        if self.linked:
            self.project_wallet = new_owner
        return previous

    def renounce_ownership(self, caller: str) -> str:
        """Clear the owner permanently. Returns the previous owner."""
        self.require_owner(caller)
        previous, self.owner = self.owner, ZERO_ADDRESS
        if self.linked:
            self.project_wallet = ZERO_ADDRESS
        return previous

    def transfer_project_role(self, caller: str, new_wallet: Optional[str]) -> str:
        """
        Hand the project role to new_wallet. The owner is unaffected.

        Returns:
            The previous project wallet

        Raises:
            Unauthorized: If caller does not hold the project role
            ZeroAddress: If new_wallet is empty
            SameAddress: If new_wallet already holds the role
        """
        self.require_project_role(caller)
        if self.linked:
            raise Unauthorized("project role follows ownership; use transfer_ownership")
        if not new_wallet:
            raise ZeroAddress("project wallet cannot be the zero address")
        if new_wallet == self.project_wallet:
            raise SameAddress(f"{new_wallet!r} already holds the project role")
        previous, self.project_wallet = self.project_wallet, new_wallet
        return previous
