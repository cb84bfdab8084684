"""
interest.py - Simple interest accrual

Pure functions with explicit inputs. Nothing here reads or mutates ledger
state, so every function returns the same result for the same arguments.

Key Formula:
    interest = balance * annual_rate * elapsed_seconds // (SECONDS_PER_YEAR * RATE_SCALE)

Integer division truncates, so the ledger under-accrues by at most one base
unit per application and can never mint value through rounding.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional

from .core import RATE_SCALE, SECONDS_PER_YEAR, ClockRegressionError


_ONE_SECOND = timedelta(seconds=1)


def accrue(balance: int, annual_rate: int, elapsed_seconds: int) -> int:
    """
    Interest owed on `balance` over `elapsed_seconds` at `annual_rate`.

    PURE FUNCTION - All inputs explicit, no hidden state.

    Args:
        balance: Balance in base units
        annual_rate: Annual simple rate scaled by RATE_SCALE
        elapsed_seconds: Whole seconds since the last accrual

    Returns:
        Interest in base units, truncated toward zero (always >= 0)

    Raises:
        ValueError: if balance or annual_rate is negative
        ClockRegressionError: if elapsed_seconds is negative
    """
    if balance < 0:
        raise ValueError(f"balance cannot be negative, got {balance}")
    if annual_rate < 0:
        raise ValueError(f"annual_rate cannot be negative, got {annual_rate}")
    if elapsed_seconds < 0:
        raise ClockRegressionError(f"elapsed time cannot be negative, got {elapsed_seconds}s")
    return balance * annual_rate * elapsed_seconds // (SECONDS_PER_YEAR * RATE_SCALE)


def elapsed_seconds(since: datetime, now: datetime) -> int:
    """
    Whole seconds between two instants, floored.

    Raises:
        ClockRegressionError: if `now` is before `since`
    """
    if now < since:
        raise ClockRegressionError(f"Cannot accrue backwards: {now} < {since}")
    return (now - since) // _ONE_SECOND


def calculate_pending_interest(
    balance: int,
    annual_rate: int,
    last_accrual_time: Optional[datetime],
    current_time: datetime,
) -> int:
    """
    Interest that applying accrual at `current_time` would add.

    Used by read-only queries so reported balances reflect the true position
    without persisting an accrual. Zero when the account has never been
    touched or holds no balance.
    """
    if last_accrual_time is None or balance == 0:
        return 0
    return accrue(balance, annual_rate, elapsed_seconds(last_accrual_time, current_time))
