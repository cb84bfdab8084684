"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Market totals equal the sum of account balances
2. atomicity.py - Failed operations leave no trace
3. determinism.py - Identical inputs produce identical state
4. temporal.py - Time only moves forward and interest only grows
5. concurrency.py - Operations from many threads are serialized

These tests use hypothesis for property-based testing.
"""
