"""
insured.py - Dual-Asset (Insured) Vesting

Beneficiaries fund an allocation with the funding asset and vest into the
project asset at a fixed ratio. Until a unit of funding is settled its
owner may change their mind: each claim settles the newly vested funding
units under the decision held at that moment, either as project asset
(funding passes to the project) or as a refund of the funding itself.

Flow:
    project   set_allocation(user, cap)          funding caps, pre-activation
    user      add_funds(amount)                  pulls funding, up to cap
    project   activate(start)                    pulls funded × ratio project asset
    user      toggle_decision() / set_decision()
    user      claim()                            settles vested funding units
    owner     emergency_release()                remaining funding refundable
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from ..core import NATIVE_ASSET, NoFundsAdded
from ..ledger import AssetLedger
from ..roles import RoleAuthority
from ..config import InsuredVestingConfig
from ..events import EventType
from ..allocations import (
    compute_set_funding_allocation, compute_add_funds, compute_set_decision,
)
from ..clock import compute_activation
from ..claims import (
    compute_insured_claim, vested_amount, claimable_for, funding_to_project,
)
from ..emergency import compute_insured_emergency_claim
from ..recovery import (
    compute_recover_token, compute_recover_native,
    insured_project_liability, insured_funding_liability, recoverable_amount,
)
from .base import VestingContract


class InsuredVesting(VestingContract):
    """Linear vesting of a project asset backed by beneficiary funding."""

    def __init__(
        self,
        ledger: AssetLedger,
        address: str,
        owner: str,
        config: InsuredVestingConfig,
        roles: Optional[RoleAuthority] = None,
    ):
        ledger.get_asset(config.funding_asset)
        super().__init__(
            ledger=ledger,
            address=address,
            roles=roles or RoleAuthority(owner=owner, project_wallet=config.project_wallet),
            project_asset=config.project_asset,
            vesting_duration=config.vesting_duration,
        )
        self.config = config

    # ========================================================================
    # InsuredVestingView
    # ========================================================================

    @property
    def funding_asset(self) -> str:
        return self.config.funding_asset

    @property
    def funding_to_project_ratio(self) -> int:
        return self.config.funding_to_project_ratio

    def liability_for(self, asset: str) -> Optional[int]:
        if asset == self.project_asset:
            return insured_project_liability(self)
        if asset == self.funding_asset:
            return insured_funding_liability(self)
        return None

    # ========================================================================
    # VIEWS
    # ========================================================================

    @property
    def total_funding(self) -> int:
        return self.totals.total_entitlement

    @property
    def total_funding_claimed(self) -> int:
        return self.totals.total_claimed

    @property
    def total_allocation(self) -> int:
        return self.totals.total_allocation

    def funding_to_project(self, amount: int) -> int:
        return funding_to_project(self, amount)

    def funding_token_vested_for(self, user: str, at: Optional[datetime] = None) -> int:
        return vested_amount(self, user, at)

    def funding_token_claimable_for(self, user: str, at: Optional[datetime] = None) -> int:
        return claimable_for(self, user, at)

    def project_token_vested_for(self, user: str, at: Optional[datetime] = None) -> int:
        return self.funding_to_project(self.funding_token_vested_for(user, at))

    def project_token_claimable_for(self, user: str, at: Optional[datetime] = None) -> int:
        return self.funding_to_project(self.funding_token_claimable_for(user, at))

    # Same name as the plain variant so status reporting treats both alike.
    total_vested_for = funding_token_vested_for

    def claimable_for(self, user: str, at: Optional[datetime] = None) -> int:
        return self.funding_token_claimable_for(user, at)

    def recoverable(self, asset: str) -> int:
        return recoverable_amount(self, asset)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def set_allocation(self, caller: str, user: str, cap: int) -> None:
        """
        Set user's funding cap; lowering it below their funding refunds the excess.

        Raises:
            Unauthorized: If caller does not hold the project role
            AlreadyActivated: After activation
            ContractAsBeneficiary: If user is this contract
        """
        with self._operation("set_allocation", caller) as emitted:
            self.roles.require_project_role(caller)
            old = self.get_record(user).funding_allocation
            pending = self._commit(compute_set_funding_allocation(self, user, cap), "set_allocation")
            refunded = pending.amount_to(user, self.funding_asset)
            emitted.append(self._event(
                EventType.ALLOCATION_CHANGED, caller, user, cap, self.funding_asset,
                previous=old, refunded=refunded,
            ))

    def add_funds(self, caller: str, amount: int) -> None:
        """
        Fund caller's own allocation (pulls funding asset on caller's approval).

        Raises:
            AllocationExceeded, AlreadyActivated, InsufficientAllowance, InsufficientBalance
        """
        with self._operation("add_funds", caller) as emitted:
            self._commit(compute_add_funds(self, caller, amount), "add_funds")
            emitted.append(self._event(
                EventType.FUNDS_ADDED, caller, caller, amount, self.funding_asset,
            ))

    def activate(self, caller: str, start_time: datetime) -> None:
        """
        Lock funding, pull funded × ratio project asset (less what is held), schedule start.

        Raises:
            Unauthorized, AlreadyActivated, StartTimeInPast, StartTimeTooDistant,
            NoFundsAdded, InsufficientAllowance, InsufficientBalance
        """
        with self._operation("activate", caller) as emitted:
            self.roles.require_project_role(caller)
            pending = compute_activation(self, start_time, empty_error=NoFundsAdded)
            self.clock.activate(start_time)
            pending = self._commit(pending, "activate")
            emitted.append(self._event(
                EventType.ACTIVATED, caller,
                amount=pending.amount_to(self.address, self.project_asset),
                asset=self.project_asset,
                start_time=start_time.isoformat(),
            ))

    def toggle_decision(self, caller: str) -> bool:
        """
        Flip caller's settlement decision. Returns the new should_refund value.

        Raises:
            NoFundsAdded: If caller has not funded anything
        """
        with self._operation("toggle_decision", caller) as emitted:
            should_refund = not self.get_record(caller).should_refund
            self._commit(compute_set_decision(self, caller, should_refund), "toggle_decision")
            emitted.append(self._event(
                EventType.DECISION_TOGGLED, caller, caller, should_refund=should_refund,
            ))
        return should_refund

    def set_decision(self, caller: str, should_refund: bool) -> None:
        """
        Set caller's settlement decision explicitly.

        Raises:
            NoFundsAdded: If caller has not funded anything
        """
        with self._operation("set_decision", caller) as emitted:
            self._commit(compute_set_decision(self, caller, should_refund), "set_decision")
            emitted.append(self._event(
                EventType.DECISION_TOGGLED, caller, caller, should_refund=should_refund,
            ))

    def claim(self, caller: str, user: str) -> int:
        """
        Settle user's newly vested funding units under their current decision.

        Returns:
            Funding units settled

        Raises:
            OnlyProjectOrSender, VestingNotStarted, EmergencyReleased, NothingToClaim
        """
        with self._operation("claim", caller) as emitted:
            self.roles.require_project_or_sender(caller, user)
            pending = self._commit(compute_insured_claim(self, user), "claim")
            change = pending.record_changes[0]
            units = change.new_record.claimed - change.old_record.claimed
            emitted.append(self._event(
                EventType.CLAIMED, caller, user, units, self.funding_asset,
                should_refund=change.old_record.should_refund,
                project_amount=pending.amount_to(user, self.project_asset),
            ))
        return units

    def emergency_claim(self, caller: str, user: str) -> int:
        """
        Refund user's unsettled funding after an emergency release.

        Raises:
            OnlyProjectOrSender, NotEmergencyReleased, NothingToClaim
        """
        with self._operation("emergency_claim", caller) as emitted:
            self.roles.require_project_or_sender(caller, user)
            pending = self._commit(compute_insured_emergency_claim(self, user), "emergency_claim")
            amount = pending.amount_to(user, self.funding_asset)
            emitted.append(self._event(
                EventType.EMERGENCY_CLAIMED, caller, user, amount, self.funding_asset,
            ))
        return amount

    def recover_token(self, caller: str, asset: str) -> int:
        """
        Send an asset's unencumbered balance to the project wallet.

        Raises:
            Unauthorized: If caller is not the owner
            NothingToClaim: Project or funding asset with no excess
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

    def recover_native(self, caller: str) -> int:
        """Send the whole native balance to the project wallet; no-op on zero."""
        with self._operation("recover_native", caller) as emitted:
            self.roles.require_owner(caller)
            recipient = self.project_wallet
            pending = self._commit(compute_recover_native(self, recipient), "recover_native")
            amount = pending.amount_to(recipient, NATIVE_ASSET)
            if amount:
                emitted.append(self._event(
                    EventType.RECOVERED, caller, amount=amount, asset=NATIVE_ASSET,
                    recipient=recipient,
                ))
        return amount
