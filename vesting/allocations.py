"""
allocations.py - Beneficiary Records and Aggregate Totals

Holds the per-beneficiary bookkeeping and the aggregate counters that must
always equal the sum over all records:

    total_entitlement = Σ record.entitlement
    total_claimed     = Σ record.claimed
    total_allocation  = Σ record.funding_allocation      (insured only)

Records only change through RecordChange objects applied by
AllocationLedger.apply(), which updates the totals in the same step.

In the insured variant the vesting base is what the beneficiary actually
funded, so `entitlement` holds the funded amount and `claimed` the funding
units already settled; `funding_allocation` is the cap on funding.

Planning functions here (set allocation, add funds) are pure: they read a
VestingView and return a PendingTransaction.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Tuple

from .core import (
    Transfer, PendingTransaction, TransactionOrigin, OriginType,
    VestingView, InsuredVestingView,
    AlreadyActivated, AllocationExceeded, StaleRecord, ContractAsBeneficiary, NoFundsAdded,
    build_transaction,
)
from .clock import ActivationState


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class BeneficiaryRecord:
    """
    Immutable snapshot of one beneficiary's position.

    Attributes:
        entitlement: Units owed over the whole schedule (insured: funded amount)
        claimed: Units already paid out (insured: funding units settled)
        funding_allocation: Insured only; cap on funding
        should_refund: Insured only; settle claims as a funding refund
    """
    entitlement: int = 0
    claimed: int = 0
    funding_allocation: int = 0
    should_refund: bool = False

    def __post_init__(self):
        for name in ("entitlement", "claimed", "funding_allocation"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be int, got {type(value)}")
            if value < 0:
                raise ValueError(f"{name} cannot be negative, got {value}")
        if self.claimed > self.entitlement:
            raise ValueError(
                f"claimed ({self.claimed}) cannot exceed entitlement ({self.entitlement})"
            )

    @property
    def funding_amount(self) -> int:
        return self.entitlement

    @property
    def funding_claimed(self) -> int:
        return self.claimed

    @property
    def remaining(self) -> int:
        """Units not yet paid out."""
        return self.entitlement - self.claimed

    def is_zero(self) -> bool:
        return self == _ZERO_RECORD

    def as_dict(self) -> Dict[str, object]:
        return {
            "entitlement": self.entitlement,
            "claimed": self.claimed,
            "funding_allocation": self.funding_allocation,
            "should_refund": self.should_refund,
        }


_ZERO_RECORD = BeneficiaryRecord()


@dataclass(frozen=True, slots=True)
class RecordChange:
    """
    Before/after snapshots of one beneficiary record.

    old_record must match the ledger's current record when applied.
    """
    beneficiary: str
    old_record: BeneficiaryRecord
    new_record: BeneficiaryRecord

    def __post_init__(self):
        if not self.beneficiary:
            raise ValueError("RecordChange beneficiary cannot be empty")
        if self.new_record.claimed < self.old_record.claimed:
            raise ValueError("claimed amounts can only increase")

    def changed_fields(self) -> Dict[str, Tuple[object, object]]:
        old = self.old_record.as_dict()
        new = self.new_record.as_dict()
        return {k: (old[k], new[k]) for k in old if old[k] != new[k]}

    def __repr__(self) -> str:
        changes = ", ".join(f"{k}: {a}→{b}" for k, (a, b) in self.changed_fields().items())
        return f"RecordChange({self.beneficiary}: {changes or 'no-op'})"


@dataclass(frozen=True, slots=True)
class LedgerTotals:
    """Aggregate counters over every record of one instance."""
    total_entitlement: int = 0
    total_claimed: int = 0
    total_allocation: int = 0

    @property
    def outstanding(self) -> int:
        return self.total_entitlement - self.total_claimed


# ============================================================================
# ALLOCATION LEDGER
# ============================================================================

class AllocationLedger:
    """
    Stateful store of BeneficiaryRecords plus their totals.

    Records are created zero-valued on first write; reads of unknown
    beneficiaries return an all-zero record.
    """

    def __init__(self):
        self._records: Dict[str, BeneficiaryRecord] = {}
        self._totals = LedgerTotals()

    def get_record(self, beneficiary: str) -> BeneficiaryRecord:
        return self._records.get(beneficiary, _ZERO_RECORD)

    @property
    def totals(self) -> LedgerTotals:
        return self._totals

    def beneficiaries(self) -> List[str]:
        """Beneficiaries with a non-zero record, sorted."""
        return sorted(b for b, r in self._records.items() if not r.is_zero())

    def __iter__(self) -> Iterator[Tuple[str, BeneficiaryRecord]]:
        for b in self.beneficiaries():
            yield b, self._records[b]

    def __len__(self) -> int:
        return len(self.beneficiaries())

    def apply(self, changes: Iterable[RecordChange]) -> None:
        """
        Apply record changes and fold their deltas into the totals.

        Every change is checked against the current record before any is
        applied.

        Raises:
            StaleRecord: If a change's old_record is not the current record
        """
        changes = list(changes)
        seen = set()
        for rc in changes:
            if rc.beneficiary in seen:
                raise StaleRecord(f"two changes for {rc.beneficiary} in one transaction")
            seen.add(rc.beneficiary)
            current = self.get_record(rc.beneficiary)
            if current != rc.old_record:
                raise StaleRecord(
                    f"record for {rc.beneficiary} changed since planning: "
                    f"expected {rc.old_record}, found {current}"
                )

        totals = self._totals
        for rc in changes:
            old, new = rc.old_record, rc.new_record
            totals = LedgerTotals(
                total_entitlement=totals.total_entitlement + new.entitlement - old.entitlement,
                total_claimed=totals.total_claimed + new.claimed - old.claimed,
                total_allocation=totals.total_allocation + new.funding_allocation - old.funding_allocation,
            )
            self._records[rc.beneficiary] = new
        self._totals = totals

    def verify_totals(self) -> bool:
        """Recompute the totals from the records and compare."""
        records = list(self._records.values())
        return self._totals == LedgerTotals(
            total_entitlement=sum(r.entitlement for r in records),
            total_claimed=sum(r.claimed for r in records),
            total_allocation=sum(r.funding_allocation for r in records),
        )

    def clone(self) -> AllocationLedger:
        cloned = AllocationLedger.__new__(AllocationLedger)
        cloned._records = dict(self._records)
        cloned._totals = self._totals
        return cloned


# ============================================================================
# PLANNING FUNCTIONS
# ============================================================================

def _origin(view: VestingView, operation: str) -> TransactionOrigin:
    return TransactionOrigin(OriginType.CONTRACT, view.address, operation)


def _require_pending(view: VestingView) -> None:
    if view.activation_state is not ActivationState.PENDING:
        raise AlreadyActivated("allocations are locked after activation")


def _require_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueError(f"amount must be a non-negative int, got {amount!r}")


def _require_beneficiary(view: VestingView, beneficiary: str) -> None:
    if beneficiary == view.address:
        raise ContractAsBeneficiary(f"{view.address} cannot be its own beneficiary")


def compute_set_allocation(
    view: VestingView,
    beneficiary: str,
    amount: int,
) -> PendingTransaction:
    """
    Set a beneficiary's entitlement to an absolute amount.

    Setting the current value again yields an empty record change list.

    Raises:
        AlreadyActivated: After activation
        ContractAsBeneficiary: If beneficiary is the contract itself
    """
    _require_amount(amount)
    _require_pending(view)
    _require_beneficiary(view, beneficiary)
    old = view.get_record(beneficiary)
    if old.entitlement == amount:
        return build_transaction(view, [], [], origin=_origin(view, "set_allocation"))
    new = replace(old, entitlement=amount)
    return build_transaction(
        view, [], [RecordChange(beneficiary, old, new)],
        origin=_origin(view, "set_allocation"),
    )


def compute_set_funding_allocation(
    view: InsuredVestingView,
    beneficiary: str,
    cap: int,
) -> PendingTransaction:
    """
    Set a beneficiary's funding cap in the insured variant.

    Lowering the cap below what was already funded refunds the excess
    funding asset to the beneficiary in the same transaction.

    Raises:
        AlreadyActivated: After activation
        ContractAsBeneficiary: If beneficiary is the contract itself
    """
    _require_amount(cap)
    _require_pending(view)
    _require_beneficiary(view, beneficiary)
    old = view.get_record(beneficiary)
    if old.funding_allocation == cap:
        return build_transaction(view, [], [], origin=_origin(view, "set_allocation"))

    transfers = []
    new = replace(old, funding_allocation=cap)
    if old.entitlement > cap:
        excess = old.entitlement - cap
        new = replace(new, entitlement=cap)
        transfers.append(Transfer(excess, view.funding_asset, view.address, beneficiary))
    return build_transaction(
        view, transfers, [RecordChange(beneficiary, old, new)],
        origin=_origin(view, "set_allocation"),
    )


def compute_add_funds(
    view: InsuredVestingView,
    beneficiary: str,
    amount: int,
) -> PendingTransaction:
    """
    Pull funding asset from the beneficiary up to their funding cap.

    The pull is a spender transfer: it consumes the beneficiary's approval
    to the contract.

    Raises:
        AlreadyActivated: After activation
        AllocationExceeded: If funding would exceed the cap
    """
    _require_amount(amount)
    _require_pending(view)
    if amount == 0:
        raise ValueError("funding amount must be positive")
    _require_beneficiary(view, beneficiary)
    old = view.get_record(beneficiary)
    if old.entitlement + amount > old.funding_allocation:
        raise AllocationExceeded(amount)
    new = replace(old, entitlement=old.entitlement + amount)
    return build_transaction(
        view,
        [Transfer(amount, view.funding_asset, beneficiary, view.address, spender=view.address)],
        [RecordChange(beneficiary, old, new)],
        origin=_origin(view, "add_funds"),
    )


def compute_set_decision(
    view: InsuredVestingView,
    beneficiary: str,
    should_refund: bool,
) -> PendingTransaction:
    """
    Record a beneficiary's settlement decision.

    Takes effect for claims made after it; nothing already settled moves.

    Raises:
        NoFundsAdded: If the beneficiary has not funded anything
    """
    old = view.get_record(beneficiary)
    if old.funding_amount == 0:
        raise NoFundsAdded(f"{beneficiary} has not added funds")
    if old.should_refund == should_refund:
        return build_transaction(view, [], [], origin=_origin(view, "set_decision"))
    new = replace(old, should_refund=should_refund)
    return build_transaction(
        view, [], [RecordChange(beneficiary, old, new)],
        origin=_origin(view, "set_decision"),
    )
