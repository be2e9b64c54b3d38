"""
Idempotency Conformance Tests

INVARIANT: Nothing is ever paid twice.

    ∀ beneficiary u, instant t:
        claim(u) at t succeeds ⟹ claim(u) again at t raises NothingToClaim
        emergency_claim(u) succeeds ⟹ emergency_claim(u) again raises NothingToClaim
    ∀ pending transaction P:
        execute(P) = APPLIED ⟹ execute(P) again = ALREADY_APPLIED
"""

import pytest
from datetime import timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from vesting import (
    TokenVesting, VestingConfig, ExecuteResult, NothingToClaim, compute_claim,
)

from tests.helpers import DEPLOYER, PROJECT, ALICE, START, make_ledger


def _activated(amount):
    ledger = make_ledger()
    ledger.mint(PROJECT, "PRJ", amount)
    v = TokenVesting(ledger, "vesting", owner=DEPLOYER, config=VestingConfig("PRJ", PROJECT))
    v.set_allocation(PROJECT, ALICE, amount)
    ledger.approve(PROJECT, "vesting", "PRJ", amount)
    v.activate(PROJECT, START)
    return ledger, v


class TestClaimIdempotency:
    """Repeated claims at the same instant pay nothing more."""

    @given(
        st.integers(min_value=1, max_value=10**18),
        st.integers(min_value=1, max_value=800 * 24 * 3600),
        st.integers(min_value=2, max_value=5),
    )
    @settings(max_examples=60, deadline=None)
    def test_double_claim(self, amount, seconds, repeats):
        ledger, v = _activated(amount)
        ledger.advance_time(START + timedelta(seconds=seconds))
        try:
            paid = v.claim(ALICE, ALICE)
        except NothingToClaim:
            paid = 0
        for _ in range(repeats):
            with pytest.raises(NothingToClaim):
                v.claim(ALICE, ALICE)
        assert ledger.get_balance(ALICE, "PRJ") == paid
        assert v.get_record(ALICE).claimed == paid

    @given(st.integers(min_value=1, max_value=10**18), st.integers(min_value=0, max_value=800))
    @settings(max_examples=40, deadline=None)
    def test_double_emergency_claim(self, amount, days):
        ledger, v = _activated(amount)
        ledger.advance_time(START + timedelta(days=days))
        v.emergency_release(DEPLOYER)
        assert v.emergency_claim(ALICE, ALICE) == amount
        with pytest.raises(NothingToClaim):
            v.emergency_claim(ALICE, ALICE)
        assert ledger.get_balance(ALICE, "PRJ") == amount


class TestPlannedTransactionReplay:
    """A planned claim executes at most once on the asset ledger."""

    def test_replayed_plan_is_already_applied(self):
        ledger, v = _activated(10_000)
        ledger.advance_time(START + timedelta(days=365))
        pending = compute_claim(v, ALICE)
        assert ledger.execute(pending) == ExecuteResult.APPLIED
        assert ledger.execute(pending) == ExecuteResult.ALREADY_APPLIED
        assert ledger.get_balance(ALICE, "PRJ") == 5000
