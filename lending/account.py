"""
account.py - Per-user balances and accrual application

An Account holds one user's supply and borrow balances for one asset plus
the instant interest was last applied. apply_accrual() is the only place
interest enters the ledger, and it must run before any balance is read for a
solvency decision or a withdrawal limit.

Each balance moves between two implicit states, zero and non-zero. There is
no status field: accrual on a zero balance is a no-op.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Optional, Tuple

from .interest import accrue, elapsed_seconds

if TYPE_CHECKING:
    from .market import MarketLedger


@dataclass(slots=True)
class Account:
    """
    Mutable per-user ledger entry, keyed by (asset_id, user) in MarketLedger.

    Attributes:
        user: Account owner
        supply_balance: Principal plus accrued interest owed to the user
        borrow_balance: Principal plus accrued interest owed by the user
        last_accrual_time: When interest was last applied (None until first touch)
    """
    user: str
    supply_balance: int = 0
    borrow_balance: int = 0
    last_accrual_time: Optional[datetime] = None

    @property
    def has_supply(self) -> bool:
        return self.supply_balance > 0

    @property
    def has_borrow(self) -> bool:
        return self.borrow_balance > 0

    def copy(self) -> 'Account':
        return Account(self.user, self.supply_balance, self.borrow_balance, self.last_accrual_time)


def apply_accrual(account: Account, market: 'MarketLedger', now: datetime) -> Tuple[int, int]:
    """
    Bring `account` up to date at `now`.

    On first touch only the timestamp is recorded: there is no elapsed time to
    measure against. Afterwards supply and borrow interest are credited at the
    market's rates for the whole seconds elapsed, and the same amounts are
    added to the market totals. The timestamp advances by exactly those
    seconds, so a fractional remainder accrues on the next application.

    Args:
        account: Account to update in place
        market: Market supplying rates and totals
        now: Current ledger time

    Returns:
        Tuple of (supply_interest, borrow_interest) added

    Raises:
        ClockRegressionError: if `now` is before the last accrual
    """
    if account.last_accrual_time is None:
        account.last_accrual_time = now
        return 0, 0

    elapsed = elapsed_seconds(account.last_accrual_time, now)

    supply_interest = 0
    if account.supply_balance > 0:
        supply_interest = accrue(account.supply_balance, market.params.supply_rate_per_year, elapsed)
    borrow_interest = 0
    if account.borrow_balance > 0:
        borrow_interest = accrue(account.borrow_balance, market.params.borrow_rate_per_year, elapsed)

    account.supply_balance += supply_interest
    account.borrow_balance += borrow_interest
    market.total_supply += supply_interest
    market.total_borrow += borrow_interest
    # Sub-second remainder carries over to the next accrual.
    account.last_accrual_time += timedelta(seconds=elapsed)
    return supply_interest, borrow_interest
