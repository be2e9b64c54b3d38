"""
reporting.py - Read-Only Status Views and Schedule Projection

Snapshot helpers for UI adapters and scripts. Nothing here mutates state.

    contract_status(contract)            lifecycle, totals, holdings
    user_status(contract, user)          one beneficiary's position
    vesting_curve(contract, user, ts)    vested amounts over a time grid
    schedule_grid(contract, points)      evenly spaced instants over the schedule

vesting_curve is vectorised with numpy. Amounts are computed with Python
integers inside object arrays, so they match claims.vested_amount exactly
for any entitlement size.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, List, Sequence

import numpy as np

from .core import NATIVE_ASSET

_TICK = timedelta(microseconds=1)


def _is_insured(contract) -> bool:
    return hasattr(contract, "funding_asset")


def contract_status(contract) -> Dict[str, Any]:
    """Lifecycle, totals and holdings of a contract as a plain dict."""
    clock = contract.clock
    status: Dict[str, Any] = {
        "address": contract.address,
        "variant": type(contract).__name__,
        "state": clock.state.value,
        "owner": contract.owner,
        "project_wallet": contract.project_wallet,
        "project_asset": contract.project_asset,
        "vesting_start_time": clock.start_time,
        "vesting_end_time": clock.end_time,
        "vesting_duration_days": clock.duration / timedelta(days=1),
        "elapsed_fraction": float(clock.elapsed_fraction(contract.current_time)),
        "beneficiaries": len(contract.allocations),
        "total_entitlement": contract.total_entitlement,
        "total_claimed": contract.total_claimed,
        "project_balance": contract.get_balance(contract.address, contract.project_asset),
        "native_balance": contract.get_balance(contract.address, NATIVE_ASSET),
        "project_liability": contract.liability_for(contract.project_asset),
    }
    if _is_insured(contract):
        status.update({
            "funding_asset": contract.funding_asset,
            "funding_to_project_ratio": contract.funding_to_project_ratio,
            "total_allocation": contract.total_allocation,
            "funding_balance": contract.get_balance(contract.address, contract.funding_asset),
            "funding_liability": contract.liability_for(contract.funding_asset),
        })
    return status


def user_status(contract, user: str) -> Dict[str, Any]:
    """One beneficiary's entitlement, progress and (insured) decision."""
    record = contract.get_record(user)
    vested = contract.total_vested_for(user)
    status: Dict[str, Any] = {
        "user": user,
        "entitlement": record.entitlement,
        "claimed": record.claimed,
        "vested": vested,
        "claimable": contract.claimable_for(user),
        "remaining": record.remaining,
    }
    if _is_insured(contract):
        status.update({
            "funding_allocation": record.funding_allocation,
            "funding_amount": record.funding_amount,
            "funding_claimed": record.funding_claimed,
            "should_refund": record.should_refund,
            "project_token_vested": contract.project_token_vested_for(user),
            "project_token_claimable": contract.project_token_claimable_for(user),
        })
    return status


def schedule_grid(contract, points: int = 25) -> List[datetime]:
    """
    Evenly spaced instants from the start to the end of the schedule.

    Raises:
        ValueError: Before activation, or if points < 2
    """
    if points < 2:
        raise ValueError(f"points must be at least 2, got {points}")
    start = contract.vesting_start_time
    if start is None:
        raise ValueError("schedule has no start time before activation")
    total = contract.vesting_duration // _TICK
    offsets = np.linspace(0, total, points).round().astype(np.int64)
    return [start + timedelta(microseconds=int(o)) for o in offsets]


def vesting_curve(contract, user: str, timestamps: Sequence[datetime]) -> Dict[str, np.ndarray]:
    """
    Project a beneficiary's vested amount over a sequence of instants.

    Returns:
        Dict of arrays aligned with timestamps:
        - 'fraction': float64 elapsed fraction in [0, 1]
        - 'vested': exact vested units (object dtype, Python ints)
        - 'claimable': vested minus what is claimed today, floored at zero
    """
    n = len(timestamps)
    entitlement = contract.get_record(user).entitlement
    claimed = contract.get_record(user).claimed
    start = contract.vesting_start_time

    if start is None or not contract.is_activated:
        zeros = np.zeros(n, dtype=object)
        return {"fraction": np.zeros(n), "vested": zeros, "claimable": zeros.copy()}

    total = contract.vesting_duration // _TICK
    elapsed = np.array([(t - start) // _TICK for t in timestamps], dtype=np.int64)
    started = elapsed >= 0

    if total == 0:
        fraction = started.astype(np.float64)
        vested = np.array([entitlement if s else 0 for s in started], dtype=object)
    else:
        clipped = np.clip(elapsed, 0, total)
        fraction = clipped / total
        vested = clipped.astype(object) * entitlement // total

    claimable = np.maximum(vested - claimed, 0).astype(object)
    return {"fraction": fraction, "vested": vested, "claimable": claimable}
