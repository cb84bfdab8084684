"""
pricing_source.py - Price table and price administration

Classes:
- Role: privileges recognised by AccessControl
- AdminCapability: token proving the holder passed the admin check
- AccessControl: single privileged identity that may change prices
- PricingTable: current USD price per supported asset (scale PRICE_SCALE)

Reading a price needs nothing. Changing one requires an AdminCapability issued
by the same AccessControl the table was built with, so authorization is an
explicit argument rather than an ambient caller identity.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Set

from .core import AccessDenied, UnsupportedAssetError


class Role(Enum):
    """Privileges an AccessControl can grant."""
    PRICE_ADMIN = "price_admin"


@dataclass(frozen=True, slots=True)
class AdminCapability:
    """Proof that `holder` was granted `role` by the AccessControl `issuer_id`."""
    holder: str
    role: Role
    issuer_id: int


class AccessControl:
    """
    Gate for admin operations with a single privileged identity.

    Example:
        access = AccessControl(admin="owner")
        cap = access.grant("owner")
        table.set_price("ETH", to_price("2500"), cap)
    """

    def __init__(self, admin: str):
        if not admin or not admin.strip():
            raise ValueError("admin cannot be empty")
        self.admin = admin
        self._issued: Set[AdminCapability] = set()

    def grant(self, caller: str, role: Role = Role.PRICE_ADMIN) -> AdminCapability:
        """Issue a capability to `caller` if it is the admin identity."""
        if caller != self.admin:
            raise AccessDenied(f"{caller} is not authorized for {role.value}")
        capability = AdminCapability(holder=caller, role=role, issuer_id=id(self))
        self._issued.add(capability)
        return capability

    def revoke(self, capability: AdminCapability) -> None:
        """Invalidate a previously issued capability."""
        self._issued.discard(capability)

    def verify(self, capability: Optional[AdminCapability], role: Role) -> None:
        """Raise AccessDenied unless `capability` was issued here for `role`."""
        if capability is None or capability not in self._issued or capability.role != role:
            raise AccessDenied(f"missing or invalid capability for {role.value}")

    def __repr__(self):
        return f"AccessControl(admin={self.admin!r})"


class PricingTable:
    """
    Current USD prices (scale PRICE_SCALE) for supported assets.

    Implements the PriceOracle protocol. Prices are time-independent: the
    table always returns the latest value set.
    """

    def __init__(self, access: AccessControl, prices: Optional[Dict[str, int]] = None):
        """
        Initialize the table.

        Args:
            access: AccessControl whose capabilities may change prices
            prices: Optional initial asset -> price mapping
        """
        self.access = access
        self.prices: Dict[str, int] = {}
        for asset_id, price in (prices or {}).items():
            self.register_asset(asset_id, price)

    def register_asset(self, asset_id: str, price: int) -> None:
        """
        Mark an asset as supported with an initial price.

        Registration happens once at system start and is not admin-gated.
        """
        if not asset_id or not asset_id.strip():
            raise ValueError("asset_id cannot be empty")
        if asset_id in self.prices:
            raise ValueError(f"Asset {asset_id} already registered")
        self.prices[asset_id] = _validated_price(price)

    def is_supported(self, asset_id: str) -> bool:
        return asset_id in self.prices

    def get_price(self, asset_id: str) -> int:
        """Return the current price of `asset_id`."""
        try:
            return self.prices[asset_id]
        except KeyError:
            raise UnsupportedAssetError(f"Asset {asset_id} not supported") from None

    def set_price(self, asset_id: str, price: int, capability: Optional[AdminCapability]) -> None:
        """Update the price of a supported asset. Requires a PRICE_ADMIN capability."""
        self.access.verify(capability, Role.PRICE_ADMIN)
        if asset_id not in self.prices:
            raise UnsupportedAssetError(f"Asset {asset_id} not supported")
        self.prices[asset_id] = _validated_price(price)

    def __repr__(self):
        return f"PricingTable({len(self.prices)} prices)"


def _validated_price(price: int) -> int:
    if isinstance(price, bool) or not isinstance(price, int):
        raise ValueError(f"price must be an int scaled by PRICE_SCALE, got {type(price).__name__}")
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    return price
