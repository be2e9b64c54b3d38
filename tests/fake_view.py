"""
fake_view.py - Test Helper for VestingView

Provides a minimal, immutable VestingView / InsuredVestingView implementation
for testing planning functions without a contract or an AssetLedger.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, Optional

from vesting import (
    ActivationState, BeneficiaryRecord, LedgerTotals,
    DEFAULT_VESTING_DURATION,
)


class FakeView:
    """
    Minimal VestingView implementation for testing planning functions.

    Totals are derived from the records, so they always satisfy the
    aggregate invariant. Liabilities follow the plain variant unless
    `liabilities` overrides them.

    Example:
        view = FakeView(
            records={'alice': BeneficiaryRecord(entitlement=1000)},
            balances={'vesting': {'PRJ': 1000}},
            state=ActivationState.ACTIVATED,
            start=datetime(2025, 1, 1),
            time=datetime(2025, 6, 1),
        )

        compute_claim(view, 'alice')
    """

    def __init__(
        self,
        records: Optional[Dict[str, BeneficiaryRecord]] = None,
        balances: Optional[Dict[str, Dict[str, int]]] = None,
        state: ActivationState = ActivationState.PENDING,
        start: Optional[datetime] = None,
        time: Optional[datetime] = None,
        duration: timedelta = DEFAULT_VESTING_DURATION,
        address: str = "vesting",
        project_asset: str = "PRJ",
        project_wallet: str = "project",
        liabilities: Optional[Dict[str, Optional[int]]] = None,
    ):
        self._records = dict(records or {})
        self._balances = balances or {}
        self._state = state
        self._start = start
        self._time = time or datetime(2025, 1, 1)
        self._duration = duration
        self._address = address
        self._project_asset = project_asset
        self._project_wallet = project_wallet
        self._liabilities = liabilities

    @property
    def current_time(self) -> datetime:
        return self._time

    @property
    def address(self) -> str:
        return self._address

    @property
    def project_asset(self) -> str:
        return self._project_asset

    @property
    def project_wallet(self) -> str:
        return self._project_wallet

    @property
    def totals(self) -> LedgerTotals:
        records = self._records.values()
        return LedgerTotals(
            total_entitlement=sum(r.entitlement for r in records),
            total_claimed=sum(r.claimed for r in records),
            total_allocation=sum(r.funding_allocation for r in records),
        )

    @property
    def activation_state(self) -> ActivationState:
        return self._state

    @property
    def vesting_start_time(self) -> Optional[datetime]:
        return self._start

    @property
    def vesting_duration(self) -> timedelta:
        return self._duration

    def get_balance(self, wallet_id: str, asset: str) -> int:
        return self._balances.get(wallet_id, {}).get(asset, 0)

    def get_record(self, beneficiary: str) -> BeneficiaryRecord:
        return self._records.get(beneficiary, BeneficiaryRecord())

    def liability_for(self, asset: str) -> Optional[int]:
        if self._liabilities is not None:
            return self._liabilities.get(asset)
        if asset == self._project_asset:
            totals = self.totals
            return totals.total_entitlement - totals.total_claimed
        return None


class FakeInsuredView(FakeView):
    """FakeView with the funding side of the insured variant."""

    def __init__(self, funding_asset: str = "USDC", ratio: int = 7, **kwargs):
        super().__init__(**kwargs)
        self._funding_asset = funding_asset
        self._ratio = ratio

    @property
    def funding_asset(self) -> str:
        return self._funding_asset

    @property
    def funding_to_project_ratio(self) -> int:
        return self._ratio

    def liability_for(self, asset: str) -> Optional[int]:
        if self._liabilities is not None:
            return self._liabilities.get(asset)
        outstanding = self.totals.total_entitlement - self.totals.total_claimed
        if asset == self._project_asset:
            if self._state is ActivationState.EMERGENCY_RELEASED:
                return 0
            return outstanding * self._ratio
        if asset == self._funding_asset:
            return outstanding
        return None
