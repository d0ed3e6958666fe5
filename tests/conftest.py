"""
conftest.py - Shared pytest fixtures for KipuBank tests

Provides common fixtures used across unit, functional and conformance tests:
- Collaborators (recording rail, event log)
- Ledgers (empty reference bank, funded bank)
- Comparison utilities
"""

import pytest

from kipubank import BoundedLedger, EventLog, RecordingRail


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

REFERENCE_CAP = 100
REFERENCE_LIMIT = 10


def make_bank(
    withdraw_limit: int = REFERENCE_LIMIT,
    bank_cap: int = REFERENCE_CAP,
    rail=None,
    sink=None,
    name: str = "test",
) -> BoundedLedger:
    """Create a quiet ledger for testing."""
    return BoundedLedger(
        name,
        withdraw_limit=withdraw_limit,
        bank_cap=bank_cap,
        transfer_rail=rail,
        event_sink=sink,
        verbose=False,
    )


def ledger_state_equals(bank1: BoundedLedger, bank2: BoundedLedger) -> bool:
    """Check if two ledgers hold the same balances and counters."""
    s1, s2 = bank1.snapshot(), bank2.snapshot()
    return (
        s1.balances == s2.balances
        and s1.total_balance == s2.total_balance
        and s1.deposit_count == s2.deposit_count
        and s1.withdrawal_count == s2.withdrawal_count
    )


def assert_conserved(bank: BoundedLedger) -> None:
    result = bank.verify_conservation()
    assert result['valid'], f"Conservation violated: {result['discrepancies']}"


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def rail():
    """Rail that delivers every payout and records it."""
    return RecordingRail()


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def bank(rail, event_log):
    """Empty bank with cap 100 and withdraw limit 10."""
    return make_bank(rail=rail, sink=event_log)


@pytest.fixture
def funded_bank(bank):
    """Reference bank with alice holding 60 and bob holding 20."""
    bank.deposit("alice", 60)
    bank.deposit("bob", 20)
    return bank
