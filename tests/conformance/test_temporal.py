"""
Temporal Conformance Tests

INVARIANT: Vesting is monotone in time and independent of the claim path.

    t1 ≤ t2 ⟹ vested(u, t1) ≤ vested(u, t2)
    vested(u, t) = 0                       for t ≤ start
    vested(u, t) = entitlement(u)          for t ≥ start + duration
    Σ claims made at t1 < … < tn = floor(entitlement × elapsed(tn) / duration)
"""

from datetime import timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from vesting import TokenVesting, VestingConfig, NothingToClaim

from tests.helpers import DEPLOYER, PROJECT, ALICE, START, make_ledger


DURATION = timedelta(days=730)
DURATION_SECONDS = int(DURATION.total_seconds())


def _activated(amount):
    ledger = make_ledger()
    ledger.mint(PROJECT, "PRJ", amount)
    v = TokenVesting(ledger, "vesting", owner=DEPLOYER, config=VestingConfig("PRJ", PROJECT))
    v.set_allocation(PROJECT, ALICE, amount)
    ledger.approve(PROJECT, "vesting", "PRJ", amount)
    v.activate(PROJECT, START)
    return ledger, v


class TestMonotonicity:
    """vested(u, t) never decreases."""

    @given(
        st.integers(min_value=1, max_value=10**24),
        st.lists(st.integers(min_value=-10**6, max_value=DURATION_SECONDS + 10**6), min_size=2, max_size=20),
    )
    @settings(max_examples=100, deadline=None)
    def test_vested_is_monotone(self, amount, offsets):
        _, v = _activated(amount)
        values = [v.total_vested_for(ALICE, START + timedelta(seconds=s)) for s in sorted(offsets)]
        assert values == sorted(values)
        assert all(0 <= x <= amount for x in values)

    @given(st.integers(min_value=1, max_value=10**24))
    @settings(max_examples=50, deadline=None)
    def test_bounds(self, amount):
        _, v = _activated(amount)
        assert v.total_vested_for(ALICE, START) == 0
        assert v.total_vested_for(ALICE, START + DURATION) == amount


class TestPathIndependence:
    """Claiming often or rarely ends at the same cumulative amount."""

    @given(
        st.integers(min_value=1, max_value=10**20),
        st.lists(st.integers(min_value=1, max_value=DURATION_SECONDS), min_size=1, max_size=15),
    )
    @settings(max_examples=80, deadline=None)
    def test_cumulative_claims_equal_floor(self, amount, offsets):
        ledger, v = _activated(amount)
        for s in sorted(set(offsets)):
            ledger.advance_time(START + timedelta(seconds=s))
            try:
                v.claim(ALICE, ALICE)
            except NothingToClaim:
                pass
        last = max(offsets)
        assert ledger.get_balance(ALICE, "PRJ") == amount * last // DURATION_SECONDS
