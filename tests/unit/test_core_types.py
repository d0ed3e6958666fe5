"""
test_core_types.py - Unit tests for core records, configuration and validation

Tests:
- Amount and principal validation
- Exception payloads
- DepositRecorded / WithdrawalRecorded immutability
- TransferResult builders
- BankConfig validation
- LedgerSnapshot helpers
"""

import dataclasses

import pytest

from kipubank import (
    BankConfig, DepositRecorded, WithdrawalRecorded, TransferResult,
    LedgerSnapshot, Origin,
    LedgerError, InvalidAmount, InvalidPrincipal, CapacityExceeded,
    LimitExceeded, InsufficientFunds, TransferFailed, ReentrancyDetected,
    validate_amount, validate_principal,
)


class TestValidation:
    """Tests for validate_amount and validate_principal."""

    def test_positive_int_accepted(self):
        assert validate_amount(1) == 1
        assert validate_amount(10**30) == 10**30

    @pytest.mark.parametrize("amount", [0, -1, -100])
    def test_non_positive_rejected(self, amount):
        with pytest.raises(InvalidAmount, match="positive"):
            validate_amount(amount)

    @pytest.mark.parametrize("amount", [1.0, "5", None, True, False])
    def test_non_int_rejected(self, amount):
        with pytest.raises(InvalidAmount, match="must be int"):
            validate_amount(amount)

    def test_invalid_amount_is_value_error(self):
        """Callers catching ValueError still see bad amounts."""
        with pytest.raises(ValueError):
            validate_amount(0)

    def test_principal_accepted(self):
        assert validate_principal("0xabc") == "0xabc"

    @pytest.mark.parametrize("principal", ["", "   ", None, 42])
    def test_bad_principal_rejected(self, principal):
        with pytest.raises(InvalidPrincipal):
            validate_principal(principal)


class TestExceptions:
    """Exceptions carry structured payloads."""

    def test_capacity_exceeded(self):
        err = CapacityExceeded(110, 100)
        assert err.attempted == 110
        assert err.cap == 100
        assert "110" in str(err) and "100" in str(err)

    def test_limit_exceeded(self):
        err = LimitExceeded(15, 10)
        assert (err.attempted, err.limit) == (15, 10)

    def test_insufficient_funds(self):
        err = InsufficientFunds("alice", 30, 20)
        assert err.principal == "alice"
        assert err.attempted == 30
        assert err.available == 20

    def test_transfer_failed(self):
        err = TransferFailed("alice", 5, "rail offline")
        assert err.reason == "rail offline"
        assert "rail offline" in str(err)

    def test_reentrancy_detected(self):
        err = ReentrancyDetected("withdraw")
        assert err.operation == "withdraw"

    @pytest.mark.parametrize("exc_type", [
        InvalidAmount, InvalidPrincipal, CapacityExceeded, LimitExceeded,
        InsufficientFunds, TransferFailed, ReentrancyDetected,
    ])
    def test_all_derive_from_ledger_error(self, exc_type):
        assert issubclass(exc_type, LedgerError)


class TestRecords:
    """Tests for ledger records."""

    def test_deposit_record_defaults_to_deposit_origin(self):
        record = DepositRecorded("alice", 10, 10, 0)
        assert record.origin is Origin.DEPOSIT

    def test_records_are_frozen(self):
        record = WithdrawalRecorded("alice", 5, 5, 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.amount = 6

    def test_records_compare_by_value(self):
        assert DepositRecorded("a", 1, 1, 0) == DepositRecorded("a", 1, 1, 0)
        assert DepositRecorded("a", 1, 1, 0) != DepositRecorded("a", 1, 1, 0, Origin.RECEIVE)

    def test_repr(self):
        assert "+10" in repr(DepositRecorded("alice", 10, 10, 0))
        assert "-5" in repr(WithdrawalRecorded("alice", 5, 5, 1))


class TestTransferResult:

    def test_success(self):
        result = TransferResult.success()
        assert result.ok
        assert result.reason == ""

    def test_failure_keeps_reason(self):
        result = TransferResult.failure("insufficient gas")
        assert not result.ok
        assert result.reason == "insufficient gas"

    def test_failure_without_reason_gets_default(self):
        assert TransferResult.failure("").reason == "transfer rejected"


class TestBankConfig:
    """Tests for BankConfig validation."""

    def test_valid_config(self):
        config = BankConfig("kipu", withdraw_limit=10, bank_cap=100)
        assert config.verbose is True

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="name"):
            BankConfig("  ", withdraw_limit=10, bank_cap=100)

    @pytest.mark.parametrize("name", [123, None, b"kipu"])
    def test_non_string_name_rejected(self, name):
        with pytest.raises(ValueError, match="name"):
            BankConfig(name, withdraw_limit=10, bank_cap=100)

    def test_busy_timeout(self):
        assert BankConfig("kipu", withdraw_limit=10, bank_cap=100).busy_timeout is None
        assert BankConfig("kipu", 10, 100, busy_timeout=0).busy_timeout == 0
        with pytest.raises(ValueError, match="busy_timeout"):
            BankConfig("kipu", withdraw_limit=10, bank_cap=100, busy_timeout=-0.5)

    @pytest.mark.parametrize("limit", [0, -5])
    def test_non_positive_limit_rejected(self, limit):
        with pytest.raises(ValueError, match="withdraw_limit must be positive"):
            BankConfig("kipu", withdraw_limit=limit, bank_cap=100)

    def test_float_cap_rejected(self):
        with pytest.raises(ValueError, match="bank_cap must be int"):
            BankConfig("kipu", withdraw_limit=10, bank_cap=100.0)

    def test_config_is_frozen(self):
        config = BankConfig("kipu", withdraw_limit=10, bank_cap=100)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.bank_cap = 1000


class TestLedgerSnapshot:

    def test_helpers(self):
        snap = LedgerSnapshot(
            name="kipu", total_balance=60, deposit_count=1, withdrawal_count=0,
            withdraw_limit=10, bank_cap=100, balances=(("alice", 60),),
        )
        assert snap.balances_dict == {"alice": 60}
        assert snap.remaining_capacity == 40

    def test_snapshot_is_hashable(self):
        snap = LedgerSnapshot("kipu", 0, 0, 0, 10, 100)
        assert hash(snap) == hash(LedgerSnapshot("kipu", 0, 0, 0, 10, 100))
