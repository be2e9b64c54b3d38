"""
vesting.py - Single-Asset Vesting With a Project Role

TokenVesting distributes one asset linearly over its schedule. The project
role manages allocations and activation and may claim on behalf of users;
the owner holds the emergency and recovery powers.

    from vesting import AssetLedger, TokenVesting, VestingConfig

    v = TokenVesting(ledger, "vesting", owner="deployer",
                     config=VestingConfig("PRJ", "project"))
    v.set_allocation("project", "alice", 10_000)
    ledger.approve("project", "vesting", "PRJ", 10_000)
    v.activate("project", ledger.current_time)
    ...
    v.claim("alice", "alice")
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from ..core import NATIVE_ASSET
from ..ledger import AssetLedger
from ..roles import RoleAuthority
from ..config import VestingConfig, NativeRecoveryPolicy
from ..events import EventType
from ..allocations import compute_set_allocation
from ..clock import compute_activation
from ..claims import compute_claim, vested_amount, claimable_for
from ..emergency import compute_emergency_claim
from ..recovery import (
    compute_recover_token, compute_recover_native, distributed_liability,
    recoverable_amount,
)
from .base import VestingContract


class TokenVesting(VestingContract):
    """Linear vesting of one distributed asset."""

    def __init__(
        self,
        ledger: AssetLedger,
        address: str,
        owner: str,
        config: VestingConfig,
        roles: Optional[RoleAuthority] = None,
    ):
        super().__init__(
            ledger=ledger,
            address=address,
            roles=roles or RoleAuthority(owner=owner, project_wallet=config.project_wallet),
            project_asset=config.project_asset,
            vesting_duration=config.vesting_duration,
        )
        self.config = config

    def liability_for(self, asset: str) -> Optional[int]:
        if asset == self.project_asset:
            return distributed_liability(self)
        return None

    # ========================================================================
    # VIEWS
    # ========================================================================

    def total_vested_for(self, user: str, at: Optional[datetime] = None) -> int:
        """Units of user's entitlement vested at `at` (default: now), claimed or not."""
        return vested_amount(self, user, at)

    def claimable_for(self, user: str, at: Optional[datetime] = None) -> int:
        return claimable_for(self, user, at)

    def recoverable(self, asset: str) -> int:
        return recoverable_amount(self, asset)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def set_allocation(self, caller: str, user: str, amount: int) -> None:
        """
        Set user's total entitlement (absolute, not additive).

        Raises:
            Unauthorized: If caller does not hold the project role
            AlreadyActivated: After activation
            ContractAsBeneficiary: If user is this contract
        """
        with self._operation("set_allocation", caller) as emitted:
            self.roles.require_project_role(caller)
            old = self.get_record(user).entitlement
            self._commit(compute_set_allocation(self, user, amount), "set_allocation")
            emitted.append(self._event(
                EventType.ALLOCATION_CHANGED, caller, user, amount, self.project_asset,
                previous=old,
            ))

    def activate(self, caller: str, start_time: datetime) -> None:
        """
        Lock allocations, pull the shortfall, and schedule the start.

        Raises:
            Unauthorized: If caller does not hold the project role
            AlreadyActivated, StartTimeInPast, StartTimeTooDistant,
            TotalAmountZero, InsufficientAllowance, InsufficientBalance
        """
        with self._operation("activate", caller) as emitted:
            self.roles.require_project_role(caller)
            pending = compute_activation(self, start_time)
            self.clock.activate(start_time)
            pending = self._commit(pending, "activate")
            emitted.append(self._event(
                EventType.ACTIVATED, caller,
                amount=pending.amount_to(self.address, self.project_asset),
                asset=self.project_asset,
                start_time=start_time.isoformat(),
            ))

    def claim(self, caller: str, user: str) -> int:
        """
        Pay user everything vested and unclaimed.

        Returns:
            Units paid

        Raises:
            OnlyProjectOrSender, VestingNotStarted, EmergencyReleased, NothingToClaim
        """
        with self._operation("claim", caller) as emitted:
            self.roles.require_project_or_sender(caller, user)
            pending = self._commit(compute_claim(self, user), "claim")
            amount = pending.amount_to(user, self.project_asset)
            emitted.append(self._event(EventType.CLAIMED, caller, user, amount, self.project_asset))
        return amount

    def emergency_claim(self, caller: str, user: str) -> int:
        """
        Pay user their whole unclaimed remainder after an emergency release.

        Raises:
            OnlyProjectOrSender, NotEmergencyReleased, NothingToClaim
        """
        with self._operation("emergency_claim", caller) as emitted:
            self.roles.require_project_or_sender(caller, user)
            pending = self._commit(compute_emergency_claim(self, user), "emergency_claim")
            amount = pending.amount_to(user, self.project_asset)
            emitted.append(self._event(
                EventType.EMERGENCY_CLAIMED, caller, user, amount, self.project_asset,
            ))
        return amount

    def recover_token(self, caller: str, asset: str) -> int:
        """
        Send an asset's unencumbered balance to the project wallet.

        Returns:
            Units recovered

        Raises:
            Unauthorized: If caller is not the owner
            NothingToClaim: Distributed asset with no excess
        """
        with self._operation("recover_token", caller) as emitted:
            self.roles.require_owner(caller)
            recipient = self.project_wallet
            pending = self._commit(compute_recover_token(self, asset, recipient), "recover_token")
            amount = pending.amount_to(recipient, asset)
            if amount:
                emitted.append(self._event(
                    EventType.RECOVERED, caller, amount=amount, asset=asset, recipient=recipient,
                ))
        return amount

    def native_recipient(self) -> str:
        if self.config.native_recovery is NativeRecoveryPolicy.OWNER:
            return self.owner
        return self.project_wallet

    def recover_native(self, caller: str) -> int:
        """Send the whole native balance to the configured recipient; no-op on zero."""
        with self._operation("recover_native", caller) as emitted:
            self.roles.require_owner(caller)
            recipient = self.native_recipient()
            pending = self._commit(compute_recover_native(self, recipient), "recover_native")
            amount = pending.amount_to(recipient, NATIVE_ASSET)
            if amount:
                emitted.append(self._event(
                    EventType.RECOVERED, caller, amount=amount, asset=NATIVE_ASSET,
                    recipient=recipient,
                ))
        return amount
