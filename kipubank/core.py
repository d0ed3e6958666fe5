"""
Core types and pure functions for the bounded ledger.

This module provides the foundational data structures and protocols:
1. Protocols: BankView for read-only access, TransferRail and EventSink collaborators
2. Immutable data structures: DepositRecorded, WithdrawalRecorded, TransferResult,
   LedgerSnapshot, BankConfig
3. Exceptions: LedgerError and the domain-specific error types
4. Validation: pure checks for principals and amounts

Nothing in this module can mutate ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set, Tuple, Union, Protocol, runtime_checkable


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from principal id to balance in the smallest currency unit.
Balances = Dict[str, int]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class BankView(Protocol):
    """
    Read-only interface to ledger state.

    Transfer rails and event sinks receive nothing more than this when they
    need to look at the bank, so a callback cannot mutate state through it.
    """

    @property
    def total_balance(self) -> int:
        ...

    @property
    def withdraw_limit(self) -> int:
        ...

    @property
    def bank_cap(self) -> int:
        ...

    def get_balance(self, principal: str) -> int:
        """Return the balance of a principal, 0 if unknown."""
        ...

    def list_principals(self) -> Set[str]:
        ...


@runtime_checkable
class TransferRail(Protocol):
    """
    Boundary to the asset-movement subsystem.

    The ledger calls transfer() during a withdrawal, after the debit has been
    applied. The rail must return a definite outcome; it must not block forever.
    Any call back into the ledger must happen on the calling thread: a nested
    call from another thread waits for the withdrawal the rail is part of.
    """

    def transfer(self, principal: str, amount: int) -> 'TransferResult':
        ...


@runtime_checkable
class EventSink(Protocol):
    """
    Append-only, publish-only receiver of ledger records.

    publish() runs after the operation is applied. An exception it raises
    does not undo the operation; the ledger keeps it in publish_failures.
    """

    def publish(self, record: 'LedgerRecord') -> None:
        ...


# ============================================================================
# ENUMS
# ============================================================================

class Origin(Enum):
    """
    How funds entered the bank.

    DEPOSIT: explicit deposit() call.
    RECEIVE: inbound transfer not routed through deposit(), credited to the sender.
    """
    DEPOSIT = "deposit"
    RECEIVE = "receive"


class GuardState(Enum):
    """Two states of the reentrancy guard."""
    IDLE = "idle"
    BUSY = "busy"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InvalidAmount(LedgerError, ValueError):
    """Raised when an amount is not a positive integer."""
    pass


class InvalidPrincipal(LedgerError, ValueError):
    """Raised when a principal id is empty or not a string."""
    pass


class CapacityExceeded(LedgerError):
    """Raised when a deposit would push the total balance above the bank cap."""

    def __init__(self, attempted: int, cap: int):
        self.attempted = attempted
        self.cap = cap
        super().__init__(f"total balance {attempted} would exceed bank cap {cap}")


class LimitExceeded(LedgerError):
    """Raised when a single withdrawal is larger than the withdraw limit."""

    def __init__(self, attempted: int, limit: int):
        self.attempted = attempted
        self.limit = limit
        super().__init__(f"withdrawal {attempted} exceeds limit {limit}")


class InsufficientFunds(LedgerError):
    """Raised when a withdrawal is larger than the principal's balance."""

    def __init__(self, principal: str, attempted: int, available: int):
        self.principal = principal
        self.attempted = attempted
        self.available = available
        super().__init__(
            f"{principal}: withdrawal {attempted} exceeds available balance {available}"
        )


class TransferFailed(LedgerError):
    """Raised when the transfer rail does not deliver a withdrawal."""

    def __init__(self, principal: str, amount: int, reason: str):
        self.principal = principal
        self.amount = amount
        self.reason = reason
        super().__init__(f"transfer of {amount} to {principal} failed: {reason}")


class ReentrancyDetected(LedgerError):
    """Raised when a mutating call is made while another one is still running."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"reentrant call to {operation} rejected: ledger is busy")


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class DepositRecorded:
    """
    Immutable record of a successful deposit.

    Attributes:
        principal: Account credited.
        amount: Amount credited, in the smallest currency unit.
        new_balance: The principal's balance after the credit.
        sequence_number: Monotonic position within the ledger's audit log.
        origin: DEPOSIT for explicit calls, RECEIVE for the direct-receive path.
    """
    principal: str
    amount: int
    new_balance: int
    sequence_number: int
    origin: Origin = Origin.DEPOSIT

    def __repr__(self) -> str:
        return (f"DepositRecorded(#{self.sequence_number} {self.principal} "
                f"+{self.amount} -> {self.new_balance}, {self.origin.value})")


@dataclass(frozen=True, slots=True)
class WithdrawalRecorded:
    """
    Immutable record of a successful withdrawal.

    Attributes:
        principal: Account debited and paid out.
        amount: Amount debited, in the smallest currency unit.
        new_balance: The principal's balance after the debit.
        sequence_number: Monotonic position within the ledger's audit log.
    """
    principal: str
    amount: int
    new_balance: int
    sequence_number: int

    def __repr__(self) -> str:
        return (f"WithdrawalRecorded(#{self.sequence_number} {self.principal} "
                f"-{self.amount} -> {self.new_balance})")


LedgerRecord = Union[DepositRecorded, WithdrawalRecorded]


@dataclass(frozen=True, slots=True)
class TransferResult:
    """
    Outcome reported by a transfer rail.

    Attributes:
        ok: True if the asset was delivered.
        reason: Why delivery failed (empty on success).
    """
    ok: bool
    reason: str = ""

    @classmethod
    def success(cls) -> TransferResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> TransferResult:
        if not reason:
            reason = "transfer rejected"
        return cls(ok=False, reason=reason)


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """
    Point-in-time, internally consistent copy of ledger state.

    balances is stored as a sorted tuple of (principal, balance) pairs so the
    snapshot stays hashable and immutable.
    """
    name: str
    total_balance: int
    deposit_count: int
    withdrawal_count: int
    withdraw_limit: int
    bank_cap: int
    balances: Tuple[Tuple[str, int], ...] = field(default_factory=tuple)

    @property
    def balances_dict(self) -> Balances:
        """Balances as a fresh dict."""
        return dict(self.balances)

    @property
    def remaining_capacity(self) -> int:
        return self.bank_cap - self.total_balance


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class BankConfig:
    """
    Construction parameters for a BoundedLedger.

    Attributes:
        name: Ledger identifier, used in log lines.
        withdraw_limit: Largest amount a single withdrawal may move (> 0).
        bank_cap: Largest total balance the bank may hold (> 0).
        verbose: Print status lines for applied and rejected operations.
        busy_timeout: Seconds a mutation from another thread waits for the
            guard before failing with ReentrancyDetected (None = wait).

    Both limits are fixed for the ledger's lifetime.
    """
    name: str
    withdraw_limit: int
    bank_cap: int
    verbose: bool = True
    busy_timeout: Optional[float] = None

    def __post_init__(self):
        _check_name(self.name)
        _check_limit("withdraw_limit", self.withdraw_limit)
        _check_limit("bank_cap", self.bank_cap)
        _check_timeout(self.busy_timeout)


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Ledger name must be a non-empty string, got {name!r}")


def _check_timeout(timeout: Optional[float]) -> None:
    if timeout is None:
        return
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
        raise ValueError(f"busy_timeout must be a non-negative number or None, got {timeout!r}")


def _check_limit(label: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be int, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"{label} must be positive, got {value}")


# ============================================================================
# VALIDATION
# ============================================================================

def validate_principal(principal: str) -> str:
    """
    Check that a principal id is a non-empty string.

    Raises:
        InvalidPrincipal: If the id is not a string or is blank.
    """
    if not isinstance(principal, str) or not principal.strip():
        raise InvalidPrincipal(f"Principal must be a non-empty string, got {principal!r}")
    return principal


def validate_amount(amount: int) -> int:
    """
    Check that an amount is a positive integer.

    Zero is rejected for every operation, so deposit and withdrawal agree.
    bool is rejected even though it subclasses int.

    Raises:
        InvalidAmount: If the amount is not an int or is not positive.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be int, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {amount}")
    return amount
