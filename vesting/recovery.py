"""
recovery.py - Recovery of Unencumbered Balances

A contract's balance of an asset splits into what it still owes
beneficiaries (the liability) and everything else. Only everything else may
ever leave through recovery:

    recoverable(asset) = balance(asset) − liability(asset)

Liabilities per variant:

    plain, distributed asset      total_entitlement − total_claimed
    insured, project asset        (total_funded − total_settled) × ratio,
                                  or 0 once emergency released
    insured, funding asset        total_funded − total_settled
    any other asset / native      none; the whole balance is recoverable

Recovering a distributed asset with nothing in excess raises NothingToClaim.
Recovering any other asset or native currency with a zero balance is a
silent no-op.
"""

from __future__ import annotations
from typing import Optional

from .core import (
    NATIVE_ASSET,
    Transfer, PendingTransaction, TransactionOrigin, OriginType,
    VestingView, InsuredVestingView,
    NothingToClaim,
    build_transaction, empty_pending_transaction,
)
from .clock import ActivationState


# ============================================================================
# LIABILITIES
# ============================================================================

def distributed_liability(view: VestingView) -> int:
    """Distributed-asset units still owed to beneficiaries."""
    return view.totals.total_entitlement - view.totals.total_claimed


def insured_project_liability(view: InsuredVestingView) -> int:
    """
    Project-asset units backing unsettled funding.

    Emergency claims refund in the funding asset, so nothing in the project
    asset is owed after an emergency release.
    """
    if view.activation_state is ActivationState.EMERGENCY_RELEASED:
        return 0
    return distributed_liability(view) * view.funding_to_project_ratio


def insured_funding_liability(view: InsuredVestingView) -> int:
    """Funding-asset units not yet settled either way."""
    return distributed_liability(view)


# ============================================================================
# PLANNING FUNCTIONS
# ============================================================================

def recoverable_amount(view: VestingView, asset: str) -> int:
    """Units of asset the owner could recover right now."""
    balance = view.get_balance(view.address, asset)
    liability: Optional[int] = view.liability_for(asset)
    if liability is None:
        return balance
    return max(0, balance - liability)


def compute_recover_token(
    view: VestingView,
    asset: str,
    recipient: Optional[str] = None,
    strict: bool = True,
) -> PendingTransaction:
    """
    Plan recovery of an asset's unencumbered balance.

    Args:
        view: Read-only contract view
        asset: Asset to recover
        recipient: Destination (default: the project wallet)
        strict: Raise NothingToClaim when a distributed asset has no excess;
                when False that case is a no-op

    Raises:
        NothingToClaim: Distributed asset with no excess (strict only)
    """
    if recipient is None:
        recipient = view.project_wallet
    amount = recoverable_amount(view, asset)
    if amount == 0:
        if strict and view.liability_for(asset) is not None:
            raise NothingToClaim(f"no excess {asset} to recover")
        return empty_pending_transaction(view)
    return build_transaction(
        view,
        [Transfer(amount, asset, view.address, recipient)],
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "recover_token"),
    )


def compute_recover_native(view: VestingView, recipient: str) -> PendingTransaction:
    """Plan recovery of the whole native balance. No-op on zero."""
    balance = view.get_balance(view.address, NATIVE_ASSET)
    if balance == 0:
        return empty_pending_transaction(view)
    return build_transaction(
        view,
        [Transfer(balance, NATIVE_ASSET, view.address, recipient)],
        origin=TransactionOrigin(OriginType.CONTRACT, view.address, "recover_native"),
    )
