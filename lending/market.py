"""
market.py - Pool-wide state for the supported asset

MarketLedger owns every Account for its asset in an explicit dict keyed by
(asset_id, user), the pool totals, and the market's fixed parameters. It is
the only module that changes balances outside of accrual.

Key responsibilities:
    - Record supply, withdraw, borrow and repay against an account and the totals
    - Verify conservation: totals equal the sums of account balances
    - Export and import the persisted layout (snapshot / from_snapshot)
    - Produce a deterministic hash of the full state
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple
import hashlib

from .account import Account
from .core import (
    BPS_SCALE, DEFAULT_ASSET_ID, DEFAULT_BORROW_RATE, DEFAULT_COLLATERAL_FACTOR_BPS,
    DEFAULT_PRICE, DEFAULT_SUPPLY_RATE,
    InsufficientBalanceError, InvariantViolation,
    require_positive,
)
from .pricing_source import PricingTable


AccountKey = Tuple[str, str]  # (asset_id, user)


@dataclass(frozen=True, slots=True)
class MarketParams:
    """
    Fixed market parameters, set once at initialization.

    Attributes:
        supply_rate_per_year: Annual simple rate credited to suppliers (scale RATE_SCALE)
        borrow_rate_per_year: Annual simple rate charged to borrowers (scale RATE_SCALE)
        collateral_factor_bps: Max borrow value as a fraction of collateral value
    """
    supply_rate_per_year: int = DEFAULT_SUPPLY_RATE
    borrow_rate_per_year: int = DEFAULT_BORROW_RATE
    collateral_factor_bps: int = DEFAULT_COLLATERAL_FACTOR_BPS

    def __post_init__(self):
        for name in ("supply_rate_per_year", "borrow_rate_per_year", "collateral_factor_bps"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {type(value).__name__}")
            if value < 0:
                raise ValueError(f"{name} cannot be negative, got {value}")
        if self.collateral_factor_bps > BPS_SCALE:
            raise ValueError(
                f"collateral_factor_bps must be <= {BPS_SCALE}, got {self.collateral_factor_bps}"
            )


class MarketLedger:
    """
    Accounts and totals for a single asset.

    Accounts are created implicitly on first access and never removed, even
    at zero balance. Rates and collateral factor are immutable after
    construction.

    Example:
        pricing = PricingTable(AccessControl("owner"))
        market = MarketLedger.initialize_defaults(pricing)
        account = market.account("alice")
        market.record_supply(account, to_base_units("1"))
    """

    def __init__(self, asset_id: str, params: Optional[MarketParams] = None):
        if not asset_id or not asset_id.strip():
            raise ValueError("asset_id cannot be empty")
        self.asset_id = asset_id
        self.params = params or MarketParams()
        self.total_supply: int = 0
        self.total_borrow: int = 0
        self._accounts: Dict[AccountKey, Account] = {}

    @classmethod
    def initialize_defaults(
        cls,
        pricing: PricingTable,
        asset_id: str = DEFAULT_ASSET_ID,
        price: int = DEFAULT_PRICE,
    ) -> 'MarketLedger':
        """
        Establish the sole supported market with default parameters.

        Collateral factor 7500 bps, supply rate 2%, borrow rate 5%, and the
        asset registered in `pricing` at $2000.
        """
        pricing.register_asset(asset_id, price)
        return cls(asset_id, MarketParams())

    # ========================================================================
    # ACCOUNTS
    # ========================================================================

    def account(self, user: str) -> Account:
        """Return the live account for `user`, creating an empty one on first interaction."""
        if not user or not user.strip():
            raise ValueError("user cannot be empty")
        key = (self.asset_id, user)
        acct = self._accounts.get(key)
        if acct is None:
            acct = Account(user)
            self._accounts[key] = acct
        return acct

    def get_account(self, user: str) -> Account:
        """Return a copy of `user`'s account (an empty one if never touched). Never creates."""
        acct = self._accounts.get((self.asset_id, user))
        return acct.copy() if acct is not None else Account(user)

    def has_account(self, user: str) -> bool:
        return (self.asset_id, user) in self._accounts

    def accounts(self) -> Iterator[Account]:
        """Iterate live accounts in deterministic (user) order."""
        for key in sorted(self._accounts):
            yield self._accounts[key]

    def list_users(self) -> List[str]:
        return [user for (_, user) in sorted(self._accounts)]

    def _drop_account(self, user: str) -> None:
        self._accounts.pop((self.asset_id, user), None)

    def _restore_account(self, account: Account) -> None:
        self._accounts[(self.asset_id, account.user)] = account

    # ========================================================================
    # BALANCE MUTATION
    # ========================================================================

    def record_supply(self, account: Account, amount: int) -> None:
        """
        Credit a deposit.

        Raises:
            ZeroAmountError: if amount is not positive
        """
        require_positive(amount)
        account.supply_balance += amount
        self.total_supply += amount

    def record_withdraw(self, account: Account, amount: int) -> None:
        """
        Debit a withdrawal from the supply balance.

        Remaining collateral is NOT re-checked against existing borrows; an
        account may withdraw into an under-collateralized state.

        Raises:
            ZeroAmountError: if amount is not positive
            InsufficientBalanceError: if amount exceeds the supply balance
        """
        require_positive(amount)
        if account.supply_balance < amount:
            raise InsufficientBalanceError(
                f"{account.user}: withdraw {amount} exceeds supply balance {account.supply_balance}"
            )
        account.supply_balance -= amount
        self.total_supply -= amount

    def record_borrow(self, account: Account, amount: int) -> None:
        """
        Add a borrow. The caller must have passed the collateral check first.

        Raises:
            ZeroAmountError: if amount is not positive
        """
        require_positive(amount)
        account.borrow_balance += amount
        self.total_borrow += amount

    def record_repay(self, account: Account, amount: int) -> Tuple[int, int]:
        """
        Apply a repayment, clamped to the outstanding borrow.

        Returns:
            Tuple of (repay_amount, refund) where refund = amount - repay_amount

        Raises:
            ZeroAmountError: if amount is not positive
        """
        require_positive(amount)
        repay_amount = min(amount, account.borrow_balance)
        account.borrow_balance -= repay_amount
        self.total_borrow -= repay_amount
        return repay_amount, amount - repay_amount

    # ========================================================================
    # INVARIANTS
    # ========================================================================

    def check_invariants(self) -> List[str]:
        """Return the names of violated invariants (empty when all hold)."""
        violations = []
        supply_sum = sum(a.supply_balance for a in self._accounts.values())
        borrow_sum = sum(a.borrow_balance for a in self._accounts.values())
        if supply_sum != self.total_supply:
            violations.append("total_supply_conserved")
        if borrow_sum != self.total_borrow:
            violations.append("total_borrow_conserved")
        if any(a.supply_balance < 0 or a.borrow_balance < 0 for a in self._accounts.values()):
            violations.append("balances_nonnegative")
        if self.total_supply < 0 or self.total_borrow < 0:
            violations.append("totals_nonnegative")
        if not 0 <= self.params.collateral_factor_bps <= BPS_SCALE:
            violations.append("collateral_factor_bounded")
        return violations

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that totals equal the sums of account balances.

        Returns:
            Dict with keys:
            - 'valid': bool - True if both totals match
            - 'totals': {'supply': int, 'borrow': int} as recorded
            - 'sums': {'supply': int, 'borrow': int} recomputed from accounts
            - 'discrepancies': List of {field, recorded, actual, difference}

        Example:
            result = market.verify_conservation()
            assert result['valid'], result['discrepancies']
        """
        totals = {'supply': self.total_supply, 'borrow': self.total_borrow}
        sums = {
            'supply': sum(a.supply_balance for a in self.accounts()),
            'borrow': sum(a.borrow_balance for a in self.accounts()),
        }
        discrepancies = [
            {
                'field': name,
                'recorded': totals[name],
                'actual': sums[name],
                'difference': totals[name] - sums[name],
            }
            for name in ('supply', 'borrow')
            if totals[name] != sums[name]
        ]
        return {
            'valid': not discrepancies,
            'totals': totals,
            'sums': sums,
            'discrepancies': discrepancies,
        }

    def utilization(self) -> Decimal:
        """total_borrow / total_supply (Decimal 0 for an empty pool)."""
        if self.total_supply == 0:
            return Decimal("0")
        return Decimal(self.total_borrow) / Decimal(self.total_supply)

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def snapshot(self) -> Dict[str, Any]:
        """
        Export the persisted logical layout as plain dicts.

        Returns:
            {
              'accounts': {(asset_id, user): {'supply_balance', 'borrow_balance', 'last_accrual_time'}},
              'market': {asset_id: {'total_supply', 'total_borrow', 'supply_rate',
                                    'borrow_rate', 'collateral_factor_bps'}},
            }
        """
        return {
            'accounts': {
                key: {
                    'supply_balance': acct.supply_balance,
                    'borrow_balance': acct.borrow_balance,
                    'last_accrual_time': acct.last_accrual_time,
                }
                for key, acct in sorted(self._accounts.items())
            },
            'market': {
                self.asset_id: {
                    'total_supply': self.total_supply,
                    'total_borrow': self.total_borrow,
                    'supply_rate': self.params.supply_rate_per_year,
                    'borrow_rate': self.params.borrow_rate_per_year,
                    'collateral_factor_bps': self.params.collateral_factor_bps,
                }
            },
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> 'MarketLedger':
        """
        Rebuild a MarketLedger from snapshot() output.

        Raises:
            ValueError: if the snapshot holds other than one market, or accounts
                        for a different asset
            InvariantViolation: if the restored totals or balances are inconsistent
        """
        markets = data.get('market', {})
        if len(markets) != 1:
            raise ValueError(f"snapshot must contain exactly one market, got {len(markets)}")
        (asset_id, row), = markets.items()
        market = cls(asset_id, MarketParams(
            supply_rate_per_year=row['supply_rate'],
            borrow_rate_per_year=row['borrow_rate'],
            collateral_factor_bps=row['collateral_factor_bps'],
        ))
        market.total_supply = row['total_supply']
        market.total_borrow = row['total_borrow']
        for (acct_asset, user), acct_row in data.get('accounts', {}).items():
            if acct_asset != asset_id:
                raise ValueError(f"account ({acct_asset}, {user}) does not belong to market {asset_id}")
            market._accounts[(asset_id, user)] = Account(
                user=user,
                supply_balance=acct_row['supply_balance'],
                borrow_balance=acct_row['borrow_balance'],
                last_accrual_time=acct_row['last_accrual_time'],
            )
        violations = market.check_invariants()
        if violations:
            raise InvariantViolation(violations)
        return market

    def state_hash(self) -> str:
        """
        Deterministic content hash of the full market state.

        Accounts are serialized in sorted key order, so equal states hash
        equally regardless of the order accounts were created in.
        """
        snap = self.snapshot()
        parts = [f"market:{self.asset_id}"]
        for field_name, value in sorted(snap['market'][self.asset_id].items()):
            parts.append(f"{field_name}={value}")
        for (asset_id, user), row in snap['accounts'].items():
            ts = _format_time(row['last_accrual_time'])
            parts.append(f"account:{asset_id}|{user}|{row['supply_balance']}|{row['borrow_balance']}|{ts}")
        return hashlib.sha256("|".join(parts).encode()).hexdigest()

    def __repr__(self) -> str:
        return (
            f"MarketLedger({self.asset_id}, supply={self.total_supply}, "
            f"borrow={self.total_borrow}, accounts={len(self._accounts)})"
        )


def _format_time(value: Optional[datetime]) -> str:
    return "null" if value is None else value.isoformat()
