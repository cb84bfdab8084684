"""
Core types, constants and protocols for the lending ledger.

This module provides the foundational pieces every other module builds on:
1. Constants: fixed-point scales and default market parameters
2. Exceptions: LendingError and the domain-specific error types
3. Protocols: collaborators the ledger consumes (prices, transfers, events)
4. Immutable records: Transfer, LendingEvent, OperationResult
5. Conversion helpers between human-readable Decimals and integer base units

All balances, rates and prices are plain Python integers scaled by the
constants below. Nothing in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, localcontext
from enum import Enum
from typing import List, Optional, Protocol, Tuple, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Annual rates are fractions scaled by 1e18 (0.02e18 == 2% per year).
RATE_SCALE = 10**18

# USD prices per whole unit of asset are scaled by 1e8.
PRICE_SCALE = 10**8

# Collateral factor denominator (basis points).
BPS_SCALE = 10_000

# 365 days, no leap-year adjustment.
SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Base units per whole unit of the supported asset.
ASSET_DECIMALS = 18

# Market defaults established by MarketLedger.initialize_defaults().
DEFAULT_ASSET_ID = "ETH"
DEFAULT_COLLATERAL_FACTOR_BPS = 7_500
DEFAULT_SUPPLY_RATE = 2 * 10**16       # 0.02e18
DEFAULT_BORROW_RATE = 5 * 10**16       # 0.05e18
DEFAULT_PRICE = 2_000 * PRICE_SCALE    # $2000

# Decimal precision for unit conversions (wide enough for any uint256).
_CONVERSION_PRECISION = 80

# Ledger clock origin when no initial time is given.
EPOCH = datetime(1970, 1, 1)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending-ledger errors."""
    pass


class ZeroAmountError(LendingError):
    """Raised when an operation amount is not strictly positive."""
    pass


class InsufficientBalanceError(LendingError):
    """Raised when a withdrawal exceeds the account's supply balance."""
    pass


class InsufficientCollateralError(LendingError):
    """Raised when a borrow would breach the loan-to-value limit."""
    pass


class UnsupportedAssetError(LendingError):
    """Raised when operating on an asset that has not been registered."""
    pass


class ClockRegressionError(LendingError, ValueError):
    """Raised when elapsed time would be negative (time must be monotonic)."""
    pass


class AccessDenied(LendingError):
    """Raised when an admin operation is attempted without a valid capability."""
    pass


class InvariantViolation(LendingError):
    """Raised when a post-mutation state violates one or more ledger invariants."""

    def __init__(self, violations: List[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


# ============================================================================
# ENUMS
# ============================================================================

class EventType(Enum):
    """Notifications emitted by the lending core after a committed operation."""
    SUPPLIED = "Supplied"
    WITHDRAWN = "Withdrawn"
    BORROWED = "Borrowed"
    REPAID = "Repaid"


class TransferKind(Enum):
    """
    Direction of a transfer instruction produced by an operation.

    PAY_OUT: pool sends asset to the user (withdraw, borrow).
    REFUND: pool returns the overpaid part of a repayment.
    """
    PAY_OUT = "pay_out"
    REFUND = "refund"


# ============================================================================
# IMMUTABLE RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Transfer:
    """
    Instruction to move `amount` base units of `asset_id` from the pool to `user`.

    The ledger only decides how much; an AssetTransfer collaborator performs
    the movement after the ledger mutation has been committed.
    """
    kind: TransferKind
    user: str
    asset_id: str
    amount: int

    def __post_init__(self):
        if not self.user or not self.user.strip():
            raise ValueError("Transfer user cannot be empty")
        if not isinstance(self.amount, int) or self.amount <= 0:
            raise ValueError(f"Transfer amount must be a positive int, got {self.amount!r}")

    def __repr__(self) -> str:
        return f"Transfer({self.kind.value} {self.amount} {self.asset_id} → {self.user})"


@dataclass(frozen=True, slots=True)
class LendingEvent:
    """
    A committed ledger notification.

    Attributes:
        event_type: Which operation produced the event.
        user: Account owner.
        asset_id: Market asset.
        amount: Amount carried by the event. For REPAID this is the amount
                actually applied to the debt, not the amount sent.
        timestamp: Ledger time of the operation.
        sequence: Position in the event log (-1 until logged by an EventLog).
    """
    event_type: EventType
    user: str
    asset_id: str
    amount: int
    timestamp: datetime
    sequence: int = -1

    def __repr__(self) -> str:
        return f"{self.event_type.value}({self.user}, {self.amount})"


@dataclass(frozen=True, slots=True)
class OperationResult:
    """
    Outcome of a committed LendingCore operation.

    Attributes:
        event: The notification emitted for the operation.
        transfer: Asset the pool owes the user after the operation, if any.
        interest_accrued: (supply_interest, borrow_interest) applied by the
                          accrual step that opened the operation.
    """
    event: LendingEvent
    transfer: Optional[Transfer] = None
    interest_accrued: Tuple[int, int] = (0, 0)

    @property
    def refund(self) -> int:
        """Amount returned to the caller (non-zero only for overpaid repayments)."""
        if self.transfer is not None and self.transfer.kind == TransferKind.REFUND:
            return self.transfer.amount
        return 0


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PriceOracle(Protocol):
    """
    Read-only price lookup.

    Returns the USD price of one whole unit of `asset_id`, scaled by
    PRICE_SCALE. Implementations raise UnsupportedAssetError for unknown assets.
    """

    def get_price(self, asset_id: str) -> int:
        ...


@runtime_checkable
class AssetTransfer(Protocol):
    """
    Movement of the underlying asset between the pool and user wallets.

    pay_out moves `amount` from the pool to `user`. receive_in returns the
    amount `user` attached to a supply or repay call.
    """

    def pay_out(self, user: str, amount: int) -> None:
        ...

    def receive_in(self, user: str) -> int:
        ...


@runtime_checkable
class EventSink(Protocol):
    """Fire-and-forget receiver of LendingEvents. Return values are ignored."""

    def notify(self, event: LendingEvent) -> None:
        ...


# ============================================================================
# CONVERSION HELPERS
# ============================================================================

Number = Union[Decimal, int, str]


def to_base_units(amount: Number, decimals: int = ASSET_DECIMALS) -> int:
    """
    Convert a human-readable quantity to integer base units.

    Truncates toward zero so a conversion never credits more than requested.

    Example:
        to_base_units("0.74")  # 740000000000000000
    """
    if isinstance(amount, float):
        raise ValueError("Pass Decimal or str, not float, to avoid binary rounding")
    value = Decimal(str(amount))
    if value.is_nan() or value.is_infinite():
        raise ValueError(f"amount must be finite, got {amount}")
    if value < 0:
        raise ValueError(f"amount cannot be negative, got {amount}")
    with localcontext() as ctx:
        ctx.prec = _CONVERSION_PRECISION
        scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_base_units(amount: int, decimals: int = ASSET_DECIMALS) -> Decimal:
    """Convert integer base units back to a Decimal quantity."""
    with localcontext() as ctx:
        ctx.prec = _CONVERSION_PRECISION
        return Decimal(amount) / (Decimal(10) ** decimals)


def to_price(usd: Number) -> int:
    """Convert a USD price (e.g. "2000" or Decimal("1999.5")) to PRICE_SCALE units."""
    price = to_base_units(usd, decimals=8)
    if price <= 0:
        raise ValueError(f"price must be positive, got {usd}")
    return price


def to_rate(fraction: Number) -> int:
    """Convert an annual rate fraction (e.g. "0.02") to RATE_SCALE units."""
    return to_base_units(fraction, decimals=18)


def require_positive(amount: int, what: str = "amount") -> None:
    """Raise ZeroAmountError unless `amount` is a strictly positive integer."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"{what} must be an int in base units, got {type(amount).__name__}")
    if amount <= 0:
        raise ZeroAmountError(f"{what} must be positive, got {amount}")
