"""
collateral.py - Collateral valuation and the borrow admission rule

PURE FUNCTIONS - all inputs explicit, integer arithmetic only.

Key Formulas:
    collateral_value = supply * price // PRICE_SCALE
    borrow_value     = borrow * price // PRICE_SCALE + proposed * price // PRICE_SCALE
    admitted        iff borrow_value * BPS_SCALE <= collateral_value * collateral_factor_bps

Both sides of the admission rule are multiplied out before comparing; nothing
is divided after the per-term price conversion.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import BPS_SCALE, PRICE_SCALE, InsufficientCollateralError


@dataclass(frozen=True, slots=True)
class CollateralStatus:
    """
    Snapshot of an account's loan-to-value position at one price.

    All values are USD scaled by the asset's base units (supply * price / PRICE_SCALE).

    Attributes:
        collateral_value: Value of the supply balance
        borrow_value: Value of the borrow balance
        borrow_limit: collateral_value * collateral_factor_bps // BPS_SCALE
        headroom: borrow_limit - borrow_value (negative when under-collateralized)
        max_borrow: Largest additional borrow, in base units, the rule admits
        healthy: Whether the existing borrow satisfies the admission rule
    """
    collateral_value: int
    borrow_value: int
    borrow_limit: int
    headroom: int
    max_borrow: int
    healthy: bool


def calculate_collateral_value(supply_balance: int, price: int) -> int:
    """USD value of a supply balance."""
    return supply_balance * price // PRICE_SCALE


def calculate_borrow_value(borrow_balance: int, price: int, proposed_amount: int = 0) -> int:
    """
    USD value of existing borrows plus a proposed new borrow.

    Each term is converted separately, as the admission rule prescribes.
    """
    return borrow_balance * price // PRICE_SCALE + proposed_amount * price // PRICE_SCALE


def within_collateral_limit(borrow_value: int, collateral_value: int, collateral_factor_bps: int) -> bool:
    return borrow_value * BPS_SCALE <= collateral_value * collateral_factor_bps


def check_borrow(
    supply_balance: int,
    borrow_balance: int,
    proposed_amount: int,
    price: int,
    collateral_factor_bps: int,
) -> None:
    """
    Admission rule for a new borrow.

    Balances must already be accrued to the current time.

    Raises:
        InsufficientCollateralError: if the borrow would exceed the limit
    """
    collateral_value = calculate_collateral_value(supply_balance, price)
    borrow_value = calculate_borrow_value(borrow_balance, price, proposed_amount)
    if not within_collateral_limit(borrow_value, collateral_value, collateral_factor_bps):
        raise InsufficientCollateralError(
            f"borrow value {borrow_value} exceeds {collateral_factor_bps} bps "
            f"of collateral value {collateral_value}"
        )


def calculate_max_borrow(
    supply_balance: int,
    borrow_balance: int,
    price: int,
    collateral_factor_bps: int,
) -> int:
    """
    Largest proposed amount check_borrow() would admit (0 if none).

    The rule reduces to floor(p * price / PRICE_SCALE) <= remaining, where
    remaining = floor(collateral_value * cf / BPS_SCALE) - existing borrow value.
    """
    collateral_value = calculate_collateral_value(supply_balance, price)
    remaining = (
        collateral_value * collateral_factor_bps // BPS_SCALE
        - calculate_borrow_value(borrow_balance, price)
    )
    if remaining < 0:
        return 0
    return ((remaining + 1) * PRICE_SCALE - 1) // price


def calculate_collateral_status(
    supply_balance: int,
    borrow_balance: int,
    price: int,
    collateral_factor_bps: int,
) -> CollateralStatus:
    """
    Compute the full loan-to-value picture for one account.

    An account can be unhealthy without ever failing a borrow: withdrawals do
    not re-check collateral, and prices move.
    """
    collateral_value = calculate_collateral_value(supply_balance, price)
    borrow_value = calculate_borrow_value(borrow_balance, price)
    borrow_limit = collateral_value * collateral_factor_bps // BPS_SCALE
    return CollateralStatus(
        collateral_value=collateral_value,
        borrow_value=borrow_value,
        borrow_limit=borrow_limit,
        headroom=borrow_limit - borrow_value,
        max_borrow=calculate_max_borrow(supply_balance, borrow_balance, price, collateral_factor_bps),
        healthy=within_collateral_limit(borrow_value, collateral_value, collateral_factor_bps),
    )
