"""
test_account.py - Unit tests for account.py

Tests:
- Account defaults and copy semantics
- apply_accrual(): first touch, supply/borrow interest, zero balances,
  market totals, clock regression, sub-second remainders
"""

import pytest
from datetime import timedelta
from hypothesis import given, settings
from hypothesis import strategies as st

from lending import Account, MarketLedger, apply_accrual, ClockRegressionError
from tests.helpers import ONE, ONE_YEAR, T0, units


class TestAccount:

    def test_defaults(self):
        acct = Account("alice")
        assert acct.supply_balance == 0
        assert acct.borrow_balance == 0
        assert acct.last_accrual_time is None
        assert not acct.has_supply
        assert not acct.has_borrow

    def test_copy_is_independent(self):
        acct = Account("alice", supply_balance=5, borrow_balance=2, last_accrual_time=T0)
        clone = acct.copy()
        clone.supply_balance = 99
        assert acct.supply_balance == 5
        assert clone == Account("alice", 99, 2, T0)


class TestApplyAccrual:

    def test_first_touch_sets_time_only(self, market):
        acct = market.account("alice")
        market.record_supply(acct, ONE)
        assert apply_accrual(acct, market, T0 + ONE_YEAR) == (0, 0)
        assert acct.supply_balance == ONE
        assert acct.last_accrual_time == T0 + ONE_YEAR

    def test_supply_interest_one_year(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        market.record_supply(acct, ONE)
        supply_interest, borrow_interest = apply_accrual(acct, market, T0 + ONE_YEAR)
        assert supply_interest == units("0.02")
        assert borrow_interest == 0
        assert acct.supply_balance == units("1.02")

    def test_borrow_interest_one_year(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        market.record_supply(acct, ONE)
        market.record_borrow(acct, units("0.5"))
        supply_interest, borrow_interest = apply_accrual(acct, market, T0 + ONE_YEAR)
        assert supply_interest == units("0.02")
        assert borrow_interest == units("0.025")
        assert acct.borrow_balance == units("0.525")

    def test_interest_added_to_market_totals(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        market.record_supply(acct, ONE)
        market.record_borrow(acct, units("0.5"))
        apply_accrual(acct, market, T0 + ONE_YEAR)
        assert market.total_supply == acct.supply_balance
        assert market.total_borrow == acct.borrow_balance
        assert market.verify_conservation()['valid']

    def test_zero_balances_no_interest(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        assert apply_accrual(acct, market, T0 + ONE_YEAR) == (0, 0)
        assert acct.last_accrual_time == T0 + ONE_YEAR

    def test_same_instant_no_interest(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        market.record_supply(acct, ONE)
        assert apply_accrual(acct, market, T0) == (0, 0)

    def test_clock_regression(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        market.record_supply(acct, ONE)
        with pytest.raises(ClockRegressionError):
            apply_accrual(acct, market, T0 - timedelta(seconds=1))
        assert acct.supply_balance == ONE
        assert acct.last_accrual_time == T0

    def test_sub_second_remainder_carries_over(self, market):
        acct = market.account("alice")
        apply_accrual(acct, market, T0)
        market.record_supply(acct, ONE)
        assert apply_accrual(acct, market, T0 + timedelta(microseconds=500_000)) == (0, 0)
        assert acct.last_accrual_time == T0
        apply_accrual(acct, market, T0 + timedelta(microseconds=1_500_000))
        assert acct.last_accrual_time == T0 + timedelta(seconds=1)

    def test_frequent_fractional_accruals_lose_only_rounding(self, market):
        """1000 accruals 1.5s apart earn what one accrual over 1500s earns, less truncation."""
        alice, bob = market.account("alice"), market.account("bob")
        for acct in (alice, bob):
            apply_accrual(acct, market, T0)
            market.record_supply(acct, 10**30)
        for step in range(1, 1001):
            apply_accrual(alice, market, T0 + step * timedelta(milliseconds=1500))
        apply_accrual(bob, market, T0 + timedelta(seconds=1500))
        assert alice.last_accrual_time == bob.last_accrual_time == T0 + timedelta(seconds=1500)
        assert alice.supply_balance >= bob.supply_balance - 1000


class TestAccrualSplitProperties:
    """Property-based tests for accrual split at fractional-second points."""

    @given(
        balance=st.integers(min_value=1, max_value=10**30),
        steps=st.lists(st.integers(min_value=1, max_value=10**7), min_size=1, max_size=40),
    )
    @settings(max_examples=200, deadline=None)
    def test_split_accrual_counts_every_whole_second(self, balance, steps):
        """
        PROPERTY: Accruing at arbitrary microsecond offsets consumes exactly the
        whole seconds elapsed, and loses at most one base unit per application.
        """
        market = MarketLedger("ETH")
        split, whole = market.account("split"), market.account("whole")
        for acct in (split, whole):
            apply_accrual(acct, market, T0)
            market.record_supply(acct, balance)

        now = T0
        for micros in steps:
            now += timedelta(microseconds=micros)
            apply_accrual(split, market, now)
        apply_accrual(whole, market, now)

        counted = timedelta(seconds=(now - T0) // timedelta(seconds=1))
        assert split.last_accrual_time == whole.last_accrual_time == T0 + counted
        assert split.supply_balance >= whole.supply_balance - len(steps)
        assert market.check_invariants() == []
