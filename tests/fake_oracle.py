"""
fake_oracle.py - Test helper implementing the PriceOracle protocol

Lets tests move prices freely without going through AccessControl.
"""

from __future__ import annotations
from typing import Dict, Optional

from lending import UnsupportedAssetError


class FakeOracle:
    """
    Minimal PriceOracle for tests.

    Example:
        oracle = FakeOracle({'ETH': 2000 * PRICE_SCALE})
        oracle.prices['ETH'] = 1000 * PRICE_SCALE
    """

    def __init__(self, prices: Optional[Dict[str, int]] = None):
        self.prices = dict(prices or {})
        self.lookups = 0

    def get_price(self, asset_id: str) -> int:
        self.lookups += 1
        if asset_id not in self.prices:
            raise UnsupportedAssetError(f"Asset {asset_id} not supported")
        return self.prices[asset_id]
