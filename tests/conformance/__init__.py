"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the vesting system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. accrual.py - Unlock curve shape (zero before cliff, monotonic, full at end)
2. atomicity.py - All-or-nothing vault operations
3. conservation.py - Custody and share balances match the accounting

These tests use hypothesis for property-based testing.
"""
