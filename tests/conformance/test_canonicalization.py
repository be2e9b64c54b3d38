"""
Canonicalization Conformance Tests

INVARIANT: A transaction's intent id depends only on its semantic content.

    order(transfers) ≠ order'(transfers) ⟹ intent_id equal
    timestamp changes                     ⟹ intent_id equal
    any transfer / record / nonce changes ⟹ intent_id differs
"""

from datetime import datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from vesting import (
    Transfer, PendingTransaction, TransactionOrigin, OriginType,
    BeneficiaryRecord, RecordChange,
)


T0 = datetime(2025, 1, 1)
WALLETS = ["vesting", "alice", "bob", "project"]


@st.composite
def transfers(draw):
    source = draw(st.sampled_from(WALLETS))
    dest = draw(st.sampled_from([w for w in WALLETS if w != source]))
    return Transfer(
        draw(st.integers(min_value=1, max_value=10**30)),
        draw(st.sampled_from(["PRJ", "USDC"])),
        source, dest,
    )


def _origin(nonce=1):
    return TransactionOrigin(OriginType.CONTRACT, "vesting", "claim", nonce)


class TestIntentIdentity:

    @given(st.lists(transfers(), min_size=1, max_size=8, unique=True), st.randoms())
    @settings(max_examples=100)
    def test_transfer_order_irrelevant(self, items, rnd):
        shuffled = list(items)
        rnd.shuffle(shuffled)
        a = PendingTransaction(tuple(items), (), _origin(), T0)
        b = PendingTransaction(tuple(shuffled), (), _origin(), T0)
        assert a.intent_id == b.intent_id

    @given(st.lists(transfers(), min_size=1, max_size=4), st.integers(min_value=0, max_value=10**6))
    @settings(max_examples=100)
    def test_timestamp_irrelevant(self, items, seconds):
        a = PendingTransaction(tuple(items), (), _origin(), T0)
        b = PendingTransaction(tuple(items), (), _origin(), T0 + timedelta(seconds=seconds))
        assert a.intent_id == b.intent_id

    @given(transfers(), st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=100)
    def test_quantity_matters(self, transfer, bump):
        other = Transfer(transfer.quantity + bump, transfer.asset, transfer.source, transfer.dest)
        a = PendingTransaction((transfer,), (), _origin(), T0)
        b = PendingTransaction((other,), (), _origin(), T0)
        assert a.intent_id != b.intent_id

    @given(st.integers(min_value=0, max_value=10**6), st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=100)
    def test_nonce_matters(self, nonce, bump):
        t = Transfer(1, "PRJ", "vesting", "alice")
        a = PendingTransaction((t,), (), _origin(nonce), T0)
        b = PendingTransaction((t,), (), _origin(nonce + bump), T0)
        assert a.intent_id != b.intent_id

    @given(st.integers(min_value=0, max_value=10**12), st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=100)
    def test_record_change_matters(self, entitlement, bump):
        old = BeneficiaryRecord()
        a = PendingTransaction(
            (), (RecordChange("alice", old, BeneficiaryRecord(entitlement=entitlement)),), _origin(), T0,
        )
        b = PendingTransaction(
            (), (RecordChange("alice", old, BeneficiaryRecord(entitlement=entitlement + bump)),),
            _origin(), T0,
        )
        assert a.intent_id != b.intent_id
