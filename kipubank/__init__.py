"""
kipubank - Bounded Deposit/Withdrawal Ledger

An in-process model of a per-principal bank with a global deposit cap, a
per-withdrawal limit and a reentrancy guard around every mutation.

Usage:
    from kipubank import BoundedLedger, RecordingRail, EventLog

    rail = RecordingRail()
    log = EventLog()
    bank = BoundedLedger("kipu", withdraw_limit=10, bank_cap=100,
                         transfer_rail=rail, event_sink=log)

    bank.deposit("alice", 60)
    bank.withdraw("alice", 10)   # pays 10 out through the rail
    bank.get_balance("alice")    # 50
"""

# Core types
from .core import (
    BankView,
    TransferRail,
    EventSink,
    Origin,
    GuardState,
    DepositRecorded,
    WithdrawalRecorded,
    LedgerRecord,
    TransferResult,
    LedgerSnapshot,
    BankConfig,
    Balances,
    validate_amount,
    validate_principal,
    # Exceptions
    LedgerError,
    InvalidAmount,
    InvalidPrincipal,
    CapacityExceeded,
    LimitExceeded,
    InsufficientFunds,
    TransferFailed,
    ReentrancyDetected,
)

# Ledger
from .bank import BoundedLedger
from .guard import ReentrancyGuard

# Collaborators
from .rails import RecordingRail, CallbackRail, TransferFunction
from .sinks import EventLog, CallbackSink, FanOutSink


__all__ = [
    # Core
    'BankView',
    'TransferRail',
    'EventSink',
    'Origin',
    'GuardState',
    'DepositRecorded',
    'WithdrawalRecorded',
    'LedgerRecord',
    'TransferResult',
    'LedgerSnapshot',
    'BankConfig',
    'Balances',
    'validate_amount',
    'validate_principal',
    'LedgerError',
    'InvalidAmount',
    'InvalidPrincipal',
    'CapacityExceeded',
    'LimitExceeded',
    'InsufficientFunds',
    'TransferFailed',
    'ReentrancyDetected',
    # Ledger
    'BoundedLedger',
    'ReentrancyGuard',
    # Collaborators
    'RecordingRail',
    'CallbackRail',
    'TransferFunction',
    'EventLog',
    'CallbackSink',
    'FanOutSink',
]
