"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the vesting system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Aggregate totals and asset conservation
2. atomicity.py - Failed operations leave no trace
3. idempotency.py - Nothing is ever paid twice
4. determinism.py - Replays agree; beneficiaries are independent
5. canonicalization.py - Content-addressable intent identity
6. temporal.py - Vesting is monotone in time and path-independent

These tests use hypothesis for property-based testing.
"""
