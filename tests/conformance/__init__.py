"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the bounded ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - total equals the sum of balances, cap and non-negativity
2. atomicity.py - rejected operations leave no trace
3. reentrancy.py - one mutation at a time
4. determinism.py - replay and identical inputs give identical state

These tests use hypothesis for property-based testing.
"""
