#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Ledger Step by Step

This is a pedagogical demonstration of how the lending ledger works.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation  - The default market, supplying, fixed-point units
  4-6:  Borrowing   - The collateral rule, rejections, atomicity
  7-8:  Time        - Interest accrual, projected balances
  9-10: Closing out - Repayment with refund, conservation proof

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from lending import (
    LendingCore, EventLog, InMemoryAssetTransfer,
    LendingError,
    to_base_units, from_base_units,
    PRICE_SCALE, RATE_SCALE,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    alice_supply: str = "1"
    alice_borrow: str = "0.74"
    rejected_borrow: str = "0.02"
    repayment: str = "1"


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    return f"{from_base_units(amount).normalize()} ETH"


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_default_market():
    """Create a lending core with the default market."""
    step_header(1, "The Default Market",
        "A lending core starts with one asset, one price and fixed rates.")

    events = EventLog()
    vault = InMemoryAssetTransfer()
    print(">>> core = LendingCore('tutorial', initial_time=datetime(2025, 1, 1, 9, 0))")
    core = LendingCore(
        name="tutorial",
        initial_time=CONFIG.start_time,
        verbose=True,
        events=events,
        transfers=vault,
    )

    params = core.market.params
    section_header("Market Parameters")
    print(f"Asset:             {core.asset_id}")
    print(f"Price:             ${Decimal(core.pricing.get_price(core.asset_id)) / PRICE_SCALE}")
    print(f"Supply rate:       {Decimal(params.supply_rate_per_year) / RATE_SCALE:.2%} per year")
    print(f"Borrow rate:       {Decimal(params.borrow_rate_per_year) / RATE_SCALE:.2%} per year")
    print(f"Collateral factor: {params.collateral_factor_bps} bps")

    return core, events, vault


def step_02_supply(core: LendingCore, vault: InMemoryAssetTransfer):
    """Supply asset to the pool."""
    step_header(2, "Supplying",
        "Supplied asset earns interest and backs future borrows.")

    amount = to_base_units(CONFIG.alice_supply)
    print(f">>> vault.attach('alice', {amount})")
    vault.attach("alice", amount)
    print(">>> core.supply('alice')")
    core.supply("alice")

    section_header("Account")
    print(core.get_account("alice"))
    print(f"Pool holds: {fmt(vault.pool_balance())}")
    return core


def step_03_base_units():
    """Show fixed-point representation."""
    step_header(3, "Base Units",
        "Every amount is an integer; there is no floating point anywhere.")

    print(f'to_base_units("1")    = {to_base_units("1")}')
    print(f'to_base_units("0.74") = {to_base_units("0.74")}')
    print("""
    Balances use 18 decimal places, prices 8, rates 18.
    Integer division always truncates toward zero.
    """)


# ============================================================================
# PHASE 2: BORROWING (Steps 4-6)
# ============================================================================

def step_04_borrow(core: LendingCore):
    """Borrow within the collateral limit."""
    step_header(4, "Borrowing",
        "A borrow is admitted if debt stays within 75% of collateral value.")

    print(f"Max borrowable: {fmt(core.max_borrowable('alice'))}")
    print(f">>> core.borrow('alice', to_base_units('{CONFIG.alice_borrow}'))")
    core.borrow("alice", to_base_units(CONFIG.alice_borrow))
    print(f"Max borrowable now: {fmt(core.max_borrowable('alice'))}")
    return core


def step_05_rejection(core: LendingCore):
    """Attempt a borrow past the limit."""
    step_header(5, "Rejection",
        "Borrows past the limit are rejected before anything changes.")

    before = core.market.state_hash()
    try:
        core.borrow("alice", to_base_units(CONFIG.rejected_borrow))
    except LendingError as exc:
        print(f"Caught {type(exc).__name__}")
    print(f"State unchanged: {core.market.state_hash() == before}")
    return core


def step_06_health(core: LendingCore):
    """Inspect the account's loan-to-value position."""
    step_header(6, "Account Health",
        "account_health() reports collateral value, borrow value and headroom.")

    health = core.account_health("alice")
    print(f"Collateral value: ${Decimal(health.collateral_value) / 10**18}")
    print(f"Borrow value:     ${Decimal(health.borrow_value) / 10**18}")
    print(f"Borrow limit:     ${Decimal(health.borrow_limit) / 10**18}")
    print(f"Healthy:          {health.healthy}")
    return core


# ============================================================================
# PHASE 3: TIME (Steps 7-8)
# ============================================================================

def step_07_advance_time(core: LendingCore):
    """Let a year pass."""
    step_header(7, "Advancing Time",
        "Interest accrues lazily; queries project it without storing it.")

    new_time = CONFIG.start_time + timedelta(days=365)
    print(f">>> core.advance_time({new_time})")
    core.advance_time(new_time)

    section_header("Projected vs Stored")
    print(f"Projected supply: {fmt(core.supply_balance_of('alice'))}")
    print(f"Projected borrow: {fmt(core.borrow_balance_of('alice'))}")
    print(f"Stored account:   {core.get_account('alice')}")
    return core


def step_08_accrue(core: LendingCore):
    """Persist accrued interest."""
    step_header(8, "Accrual",
        "accrue() writes interest into the account and the market totals.")

    supply_interest, borrow_interest = core.accrue("alice")
    print(f"Supply interest: {fmt(supply_interest)}")
    print(f"Borrow interest: {fmt(borrow_interest)}")
    print(core.get_account("alice"))
    return core


# ============================================================================
# PHASE 4: CLOSING OUT (Steps 9-10)
# ============================================================================

def step_09_repay(core: LendingCore, vault: InMemoryAssetTransfer):
    """Overpay and receive a refund."""
    step_header(9, "Repayment",
        "Repayments are clamped to the debt; the excess is refunded.")

    amount = to_base_units(CONFIG.repayment)
    vault.attach("alice", amount)
    result = core.repay("alice")
    print(f"Applied: {fmt(result.event.amount)}")
    print(f"Refund:  {fmt(result.refund)}")
    return core


def step_10_conservation(core: LendingCore, events: EventLog, vault: InMemoryAssetTransfer):
    """Prove the totals reconcile."""
    step_header(10, "Conservation",
        "Market totals always equal the sum of account balances.")

    report = core.verify_conservation()
    print(f"Valid:  {report['valid']}")
    print(f"Totals: {report['totals']}")
    print(f"Sums:   {report['sums']}")

    section_header("Event Log")
    for event in events:
        print(f"  #{event.sequence} {event!r} @ {event.timestamp}")
    print(f"\nalice net flow into pool: {fmt(vault.net_flow('alice'))}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LENDING LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    core, events, vault = step_01_default_market()
    wait_for_enter()
    core = step_02_supply(core, vault)
    wait_for_enter()
    step_03_base_units()
    wait_for_enter()

    core = step_04_borrow(core)
    wait_for_enter()
    core = step_05_rejection(core)
    wait_for_enter()
    core = step_06_health(core)
    wait_for_enter()

    core = step_07_advance_time(core)
    wait_for_enter()
    core = step_08_accrue(core)
    wait_for_enter()

    core = step_09_repay(core, vault)
    wait_for_enter()
    step_10_conservation(core, events, vault)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lending/collateral.py for the admission rule
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
