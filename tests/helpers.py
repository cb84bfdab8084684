"""
helpers.py - Shared constants and assertions for lending ledger tests
"""

from datetime import datetime, timedelta

from lending import LendingCore, to_base_units


T0 = datetime(2025, 1, 1)
ONE_DAY = timedelta(days=1)
ONE_YEAR = timedelta(days=365)
ONE = to_base_units("1")


def units(amount: str) -> int:
    """Human-readable asset quantity to base units."""
    return to_base_units(amount)


def assert_conserved(core: LendingCore) -> None:
    """Fail with the discrepancy list if totals drift from account sums."""
    result = core.verify_conservation()
    assert result['valid'], f"Conservation violated: {result['discrepancies']}"
