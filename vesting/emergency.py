"""
emergency.py - Emergency Release Payouts

Once the owner trips the emergency gate (VestingClock.emergency_release),
regular claims stop and every beneficiary may take the whole unclaimed
remainder of their entitlement at once, regardless of the schedule and even
before the start time.

    remainder(u) = entitlement(u) − claimed(u)

Plain variants pay the remainder in the distributed asset. The insured
variant refunds it in the funding asset: the project never delivered the
full schedule, so unsettled funding goes back to the beneficiary.
"""

from __future__ import annotations
from dataclasses import replace

from .core import (
    Transfer, PendingTransaction, TransactionOrigin, OriginType,
    VestingView, InsuredVestingView,
    NotEmergencyReleased, NothingToClaim,
    build_transaction,
)
from .allocations import RecordChange
from .clock import ActivationState


def require_emergency_released(view: VestingView) -> None:
    if view.activation_state is not ActivationState.EMERGENCY_RELEASED:
        raise NotEmergencyReleased("emergency release is not active")


def _remainder_change(view: VestingView, beneficiary: str) -> RecordChange:
    require_emergency_released(view)
    old = view.get_record(beneficiary)
    if old.remaining == 0:
        raise NothingToClaim(f"nothing left for {beneficiary}")
    return RecordChange(beneficiary, old, replace(old, claimed=old.entitlement))


def compute_emergency_claim(view: VestingView, beneficiary: str) -> PendingTransaction:
    """
    Plan an emergency payout of the distributed asset.

    Raises:
        NotEmergencyReleased: While the gate is closed
        NothingToClaim: If everything was already claimed
    """
    change = _remainder_change(view, beneficiary)
    return build_transaction(
        view,
        [Transfer(change.old_record.remaining, view.project_asset, view.address, beneficiary)],
        [change],
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "emergency_claim"),
    )


def compute_insured_emergency_claim(view: InsuredVestingView, beneficiary: str) -> PendingTransaction:
    """Plan an emergency refund of the beneficiary's unsettled funding."""
    change = _remainder_change(view, beneficiary)
    return build_transaction(
        view,
        [Transfer(change.old_record.remaining, view.funding_asset, view.address, beneficiary)],
        [change],
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "emergency_claim"),
    )
