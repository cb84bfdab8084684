"""
conftest.py - Shared pytest fixtures for lending ledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Access control and admin capability
- Pricing tables and the default market
- Lending cores (empty, funded, with collaborators)
"""

import pytest

from lending import (
    LendingCore, MarketLedger, PricingTable, AccessControl,
    EventLog, InMemoryAssetTransfer,
)

from tests.helpers import T0, ONE


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def access():
    return AccessControl(admin="owner")


@pytest.fixture
def admin_cap(access):
    return access.grant("owner")


@pytest.fixture
def pricing(access):
    return PricingTable(access)


@pytest.fixture
def market(pricing):
    return MarketLedger.initialize_defaults(pricing)


@pytest.fixture
def core(market, pricing):
    """Default market at T0, no collaborators, quiet."""
    return LendingCore("test", T0, verbose=False, market=market, pricing=pricing)


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def vault():
    return InMemoryAssetTransfer()


@pytest.fixture
def wired_core(market, pricing, event_log, vault):
    """Default market with an EventLog and an InMemoryAssetTransfer attached."""
    return LendingCore(
        "wired", T0, verbose=False,
        market=market, pricing=pricing, events=event_log, transfers=vault,
    )


@pytest.fixture
def funded_core(core):
    """alice has supplied 1 unit at T0."""
    core.supply("alice", ONE)
    return core
