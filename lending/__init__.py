"""
lending - Single-Asset Collateralized Lending Ledger

Tracks supply and borrow balances for one asset, accrues simple interest over
elapsed time, and gates every borrow on a loan-to-value limit.

Usage:
    from datetime import datetime
    from lending import LendingCore, EventLog, to_base_units

    events = EventLog()
    core = LendingCore("main", datetime(2025, 1, 1), events=events)

    core.supply("alice", to_base_units("1"))       # 1 ETH at $2000
    core.borrow("alice", to_base_units("0.74"))    # within the 75% limit

    core.advance_time(datetime(2026, 1, 1))
    result = core.repay("alice", to_base_units("1"))
    result.refund                                  # overpayment returned
"""

# Core types
from .core import (
    RATE_SCALE,
    PRICE_SCALE,
    BPS_SCALE,
    SECONDS_PER_YEAR,
    ASSET_DECIMALS,
    DEFAULT_ASSET_ID,
    DEFAULT_COLLATERAL_FACTOR_BPS,
    DEFAULT_SUPPLY_RATE,
    DEFAULT_BORROW_RATE,
    DEFAULT_PRICE,
    LendingError,
    ZeroAmountError,
    InsufficientBalanceError,
    InsufficientCollateralError,
    UnsupportedAssetError,
    ClockRegressionError,
    AccessDenied,
    InvariantViolation,
    EventType,
    TransferKind,
    Transfer,
    LendingEvent,
    OperationResult,
    PriceOracle,
    AssetTransfer,
    EventSink,
    to_base_units,
    from_base_units,
    to_price,
    to_rate,
)

# Interest
from .interest import (
    accrue,
    elapsed_seconds,
    calculate_pending_interest,
)

# Pricing
from .pricing_source import (
    Role,
    AdminCapability,
    AccessControl,
    PricingTable,
)

# Accounts
from .account import (
    Account,
    apply_accrual,
)

# Collateral
from .collateral import (
    CollateralStatus,
    calculate_collateral_value,
    calculate_borrow_value,
    calculate_max_borrow,
    calculate_collateral_status,
    check_borrow,
)

# Market
from .market import (
    MarketParams,
    MarketLedger,
)

# Collaborators
from .events import (
    EventLog,
    InMemoryAssetTransfer,
)

# Orchestration
from .lending_core import LendingCore

__all__ = [
    # Constants
    'RATE_SCALE', 'PRICE_SCALE', 'BPS_SCALE', 'SECONDS_PER_YEAR', 'ASSET_DECIMALS',
    'DEFAULT_ASSET_ID', 'DEFAULT_COLLATERAL_FACTOR_BPS', 'DEFAULT_SUPPLY_RATE',
    'DEFAULT_BORROW_RATE', 'DEFAULT_PRICE',
    # Errors
    'LendingError', 'ZeroAmountError', 'InsufficientBalanceError',
    'InsufficientCollateralError', 'UnsupportedAssetError', 'ClockRegressionError',
    'AccessDenied', 'InvariantViolation',
    # Records and protocols
    'EventType', 'TransferKind', 'Transfer', 'LendingEvent', 'OperationResult',
    'PriceOracle', 'AssetTransfer', 'EventSink',
    'to_base_units', 'from_base_units', 'to_price', 'to_rate',
    # Interest
    'accrue', 'elapsed_seconds', 'calculate_pending_interest',
    # Pricing
    'Role', 'AdminCapability', 'AccessControl', 'PricingTable',
    # Accounts
    'Account', 'apply_accrual',
    # Collateral
    'CollateralStatus', 'calculate_collateral_value', 'calculate_borrow_value',
    'calculate_max_borrow', 'calculate_collateral_status', 'check_borrow',
    # Market
    'MarketParams', 'MarketLedger',
    # Collaborators
    'EventLog', 'InMemoryAssetTransfer',
    # Orchestration
    'LendingCore',
]

__version__ = '1.0.0'
