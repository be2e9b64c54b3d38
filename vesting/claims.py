"""
claims.py - Vested Amounts and Claim Settlement

Pure functions over a VestingView:

    vested_amount(u, t)   = floor(entitlement(u) × elapsed_fraction(t))
    claimable_for(u, t)   = max(0, vested_amount(u, t) − claimed(u))

compute_claim() plans a regular claim of the distributed asset.
compute_insured_claim() plans a claim in funding units and settles it under
the decision the beneficiary holds at claim time:

    token decision   c × ratio project asset → beneficiary
                     c funding asset         → project wallet
    refund decision  c funding asset         → beneficiary

Decisions only affect claims made after they change, so a beneficiary who
switches mid-schedule receives two partial settlements that add up exactly
to what they funded.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Optional

from .core import (
    Transfer, PendingTransaction, TransactionOrigin, OriginType,
    VestingView, InsuredVestingView,
    VestingNotStarted, EmergencyReleased, NothingToClaim,
    build_transaction,
)
from .allocations import RecordChange
from .clock import clock_from_view


def vested_amount(view: VestingView, beneficiary: str, now: Optional[datetime] = None) -> int:
    """Units of the beneficiary's entitlement vested at now (default: view time)."""
    if now is None:
        now = view.current_time
    record = view.get_record(beneficiary)
    return clock_from_view(view).vested_amount(record.entitlement, now)


def claimable_for(view: VestingView, beneficiary: str, now: Optional[datetime] = None) -> int:
    """Vested units not yet claimed; never negative."""
    record = view.get_record(beneficiary)
    return max(0, vested_amount(view, beneficiary, now) - record.claimed)


def funding_to_project(view: InsuredVestingView, amount: int) -> int:
    """Project-asset units that settle `amount` funding units."""
    return amount * view.funding_to_project_ratio


def _require_claimable_state(view: VestingView) -> None:
    clock = clock_from_view(view)
    if not clock.is_activated:
        raise VestingNotStarted("vesting not activated")
    if clock.is_emergency_released:
        raise EmergencyReleased("regular claims are disabled after emergency release")
    if not clock.has_started(view.current_time):
        raise VestingNotStarted(f"vesting starts at {clock.start_time}")


def _claim_record_change(view: VestingView, beneficiary: str) -> RecordChange:
    _require_claimable_state(view)
    amount = claimable_for(view, beneficiary)
    if amount == 0:
        raise NothingToClaim(f"nothing claimable for {beneficiary}")
    old = view.get_record(beneficiary)
    return RecordChange(beneficiary, old, replace(old, claimed=old.claimed + amount))


def compute_claim(view: VestingView, beneficiary: str) -> PendingTransaction:
    """
    Plan a regular claim of the distributed asset.

    Raises:
        VestingNotStarted: Before activation or before the start time
        EmergencyReleased: Once the emergency gate is tripped
        NothingToClaim: If nothing is claimable right now
    """
    change = _claim_record_change(view, beneficiary)
    amount = change.new_record.claimed - change.old_record.claimed
    return build_transaction(
        view,
        [Transfer(amount, view.project_asset, view.address, beneficiary)],
        [change],
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "claim"),
    )


def compute_insured_claim(view: InsuredVestingView, beneficiary: str) -> PendingTransaction:
    """
    Plan an insured claim, settled under the current decision.

    Raises:
        VestingNotStarted: Before activation or before the start time
        EmergencyReleased: Once the emergency gate is tripped
        NothingToClaim: If nothing is claimable (including zero funding)
    """
    change = _claim_record_change(view, beneficiary)
    units = change.new_record.claimed - change.old_record.claimed

    if change.old_record.should_refund:
        transfers = [Transfer(units, view.funding_asset, view.address, beneficiary)]
    else:
        transfers = [
            Transfer(funding_to_project(view, units), view.project_asset, view.address, beneficiary),
            Transfer(units, view.funding_asset, view.address, view.project_wallet),
        ]
    return build_transaction(
        view, transfers, [change],
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "claim"),
    )
