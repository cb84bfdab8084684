"""
test_interest.py - Unit tests for interest.py

Tests:
- accrue(): formula, truncation, zero cases, input validation
- elapsed_seconds(): flooring and clock regression
- calculate_pending_interest(): first-touch and zero-balance behavior
- Split-interval additivity within truncation tolerance
"""

import pytest
from datetime import datetime, timedelta
from hypothesis import given, settings
from hypothesis import strategies as st

from lending import (
    accrue, elapsed_seconds, calculate_pending_interest,
    ClockRegressionError, RATE_SCALE, SECONDS_PER_YEAR,
    DEFAULT_SUPPLY_RATE, DEFAULT_BORROW_RATE,
)
from tests.helpers import ONE, T0


class TestAccrue:
    """Tests for the accrual formula."""

    def test_one_year_at_two_percent(self):
        assert accrue(ONE, DEFAULT_SUPPLY_RATE, SECONDS_PER_YEAR) == 2 * 10**16

    def test_one_year_at_five_percent(self):
        assert accrue(ONE, DEFAULT_BORROW_RATE, SECONDS_PER_YEAR) == 5 * 10**16

    def test_seconds_per_year_ignores_leap_years(self):
        assert SECONDS_PER_YEAR == 31_536_000

    def test_half_year(self):
        assert accrue(ONE, DEFAULT_SUPPLY_RATE, SECONDS_PER_YEAR // 2) == 10**16

    def test_truncates_toward_zero(self):
        # 100 * 0.02 * 1s / year = 6.3e-8 base units -> 0
        assert accrue(100, DEFAULT_SUPPLY_RATE, 1) == 0

    def test_truncation_never_over_accrues(self):
        balance = 123_456_789
        rate = DEFAULT_BORROW_RATE
        seconds = 86_400
        exact_numerator = balance * rate * seconds
        interest = accrue(balance, rate, seconds)
        assert interest * SECONDS_PER_YEAR * RATE_SCALE <= exact_numerator
        assert (interest + 1) * SECONDS_PER_YEAR * RATE_SCALE > exact_numerator

    def test_zero_balance(self):
        assert accrue(0, DEFAULT_SUPPLY_RATE, SECONDS_PER_YEAR) == 0

    def test_zero_rate(self):
        assert accrue(ONE, 0, SECONDS_PER_YEAR) == 0

    def test_zero_elapsed(self):
        assert accrue(ONE, DEFAULT_SUPPLY_RATE, 0) == 0

    def test_idempotent(self):
        results = {accrue(ONE, DEFAULT_SUPPLY_RATE, 12345) for _ in range(5)}
        assert len(results) == 1

    def test_negative_balance_rejected(self):
        with pytest.raises(ValueError, match="balance"):
            accrue(-1, DEFAULT_SUPPLY_RATE, 10)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError, match="annual_rate"):
            accrue(ONE, -1, 10)

    def test_negative_elapsed_rejected(self):
        with pytest.raises(ClockRegressionError):
            accrue(ONE, DEFAULT_SUPPLY_RATE, -1)


class TestElapsedSeconds:
    """Tests for elapsed_seconds."""

    def test_whole_seconds(self):
        assert elapsed_seconds(T0, T0 + timedelta(days=1)) == 86_400

    def test_floors_fractional_seconds(self):
        assert elapsed_seconds(T0, T0 + timedelta(seconds=1, microseconds=999_999)) == 1

    def test_same_instant(self):
        assert elapsed_seconds(T0, T0) == 0

    def test_regression_raises(self):
        with pytest.raises(ClockRegressionError, match="backwards"):
            elapsed_seconds(T0, T0 - timedelta(microseconds=1))

    def test_clock_regression_is_value_error(self):
        with pytest.raises(ValueError):
            elapsed_seconds(T0 + timedelta(days=1), T0)


class TestPendingInterest:
    """Tests for calculate_pending_interest."""

    def test_never_touched(self):
        assert calculate_pending_interest(ONE, DEFAULT_SUPPLY_RATE, None, T0 + timedelta(days=365)) == 0

    def test_zero_balance(self):
        assert calculate_pending_interest(0, DEFAULT_SUPPLY_RATE, T0, T0 + timedelta(days=365)) == 0

    def test_matches_accrue(self):
        now = T0 + timedelta(days=90)
        expected = accrue(ONE, DEFAULT_BORROW_RATE, 90 * 86_400)
        assert calculate_pending_interest(ONE, DEFAULT_BORROW_RATE, T0, now) == expected


class TestAccrualProperties:
    """Property-based accrual tests."""

    @given(
        balance=st.integers(min_value=1, max_value=10**30),
        rate=st.integers(min_value=0, max_value=RATE_SCALE),
        seconds=st.integers(min_value=0, max_value=10 * SECONDS_PER_YEAR),
    )
    @settings(max_examples=200)
    def test_non_negative(self, balance, rate, seconds):
        assert accrue(balance, rate, seconds) >= 0

    @given(
        balance=st.integers(min_value=1, max_value=10**30),
        rate=st.integers(min_value=0, max_value=RATE_SCALE),
        t1=st.integers(min_value=0, max_value=5 * SECONDS_PER_YEAR),
        t2=st.integers(min_value=0, max_value=5 * SECONDS_PER_YEAR),
    )
    @settings(max_examples=200)
    def test_split_interval_within_truncation(self, balance, rate, t1, t2):
        """
        PROPERTY: accruing [0, t1] then [t1, t1 + t2] on a fixed balance equals
        accruing [0, t1 + t2] once, up to one unit of truncation.
        """
        split = accrue(balance, rate, t1) + accrue(balance, rate, t2)
        whole = accrue(balance, rate, t1 + t2)
        assert split <= whole <= split + 1

    @given(
        balance=st.integers(min_value=0, max_value=10**30),
        seconds=st.integers(min_value=0, max_value=SECONDS_PER_YEAR),
        extra=st.integers(min_value=0, max_value=SECONDS_PER_YEAR),
    )
    def test_monotonic_in_time(self, balance, seconds, extra):
        assert accrue(balance, DEFAULT_SUPPLY_RATE, seconds) <= accrue(balance, DEFAULT_SUPPLY_RATE, seconds + extra)
