"""
bank.py - Bounded Deposit/Withdrawal Ledger

The BoundedLedger class is the central state manager of the bank.
It is the only module that mutates balances, so every change is checked,
guarded and recorded in one place.

Key responsibilities:
    - Implements the BankView protocol for read-only access by collaborators
    - Enforces the bank cap on deposits and the per-call withdraw limit
    - Serialises mutations behind a ReentrancyGuard
    - Pays withdrawals out through a TransferRail, restoring the debit on failure
    - Always records: every applied operation lands in the transaction log and
      is published to the event sink
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Set, Tuple

from .core import (
    # Types
    BankConfig, Balances, DepositRecorded, EventSink, GuardState, LedgerRecord,
    LedgerSnapshot, Origin, TransferRail, TransferResult, WithdrawalRecorded,
    # Exceptions
    CapacityExceeded, InsufficientFunds, LedgerError, LimitExceeded,
    TransferFailed,
    # Helper functions
    _check_limit, _check_name, validate_amount, validate_principal,
)
from .guard import ReentrancyGuard
from .rails import RecordingRail
from .sinks import EventLog


class BoundedLedger:
    """
    Per-principal bank with a global deposit cap and a per-withdrawal limit.

    Implements the BankView protocol, so the ledger itself can be handed to a
    rail or sink that only needs to read balances.

    Invariants (hold at every observable point):
        - total_balance == sum of all balances
        - total_balance <= bank_cap
        - no balance is negative
        - no single withdrawal moved more than withdraw_limit
        - at most one mutation runs at a time

    Thread Safety:
        Mutations are serialised across threads. A mutation started from inside
        another mutation on the same thread (e.g. from a transfer callback)
        fails with ReentrancyDetected.

    Example:
        bank = BoundedLedger("kipu", withdraw_limit=10, bank_cap=100, verbose=False)
        bank.deposit("alice", 60)
        bank.withdraw("alice", 10)
        bank.get_balance("alice")  # 50
    """

    def __init__(
        self,
        name: str,
        withdraw_limit: int,
        bank_cap: int,
        transfer_rail: Optional[TransferRail] = None,
        event_sink: Optional[EventSink] = None,
        verbose: bool = True,
        busy_timeout: Optional[float] = None,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            withdraw_limit: Largest amount a single withdrawal may move (fixed)
            bank_cap: Largest total balance the bank may hold (fixed)
            transfer_rail: Collaborator that pays withdrawals out (default: RecordingRail)
            event_sink: Receiver of applied records (default: EventLog)
            verbose: Print a status line per operation (default: True)
            busy_timeout: Seconds a mutation from another thread waits for the
                guard before raising ReentrancyDetected (default: wait)

        Raises:
            ValueError: If the name is blank, a limit is not a positive int,
                or busy_timeout is negative
        """
        _check_name(name)
        _check_limit("withdraw_limit", withdraw_limit)
        _check_limit("bank_cap", bank_cap)
        self.name = name
        self._withdraw_limit = withdraw_limit
        self._bank_cap = bank_cap
        self.transfer_rail: TransferRail = transfer_rail if transfer_rail is not None else RecordingRail()
        self.event_sink: EventSink = event_sink if event_sink is not None else EventLog()
        self.verbose = verbose

        self.balances: Balances = {}
        self._total_balance: int = 0
        self._deposit_count: int = 0
        self._withdrawal_count: int = 0
        self.transaction_log: List[LedgerRecord] = []
        # Records the sink refused, with the exception it raised
        self.publish_failures: List[Tuple[LedgerRecord, Exception]] = []
        # Monotonic sequence counter over applied operations
        self._next_sequence: int = 0
        self._guard = ReentrancyGuard(timeout=busy_timeout)

        if self.verbose:
            print(f"📝 Opened: {self.name} [withdraw_limit={withdraw_limit}, bank_cap={bank_cap}]")

    @classmethod
    def from_config(
        cls,
        config: BankConfig,
        transfer_rail: Optional[TransferRail] = None,
        event_sink: Optional[EventSink] = None,
    ) -> BoundedLedger:
        """Build a ledger from a validated BankConfig."""
        return cls(
            name=config.name,
            withdraw_limit=config.withdraw_limit,
            bank_cap=config.bank_cap,
            transfer_rail=transfer_rail,
            event_sink=event_sink,
            verbose=config.verbose,
            busy_timeout=config.busy_timeout,
        )

    # ========================================================================
    # BankView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def withdraw_limit(self) -> int:
        return self._withdraw_limit

    @property
    def bank_cap(self) -> int:
        return self._bank_cap

    @property
    def total_balance(self) -> int:
        return self._total_balance

    @property
    def deposit_count(self) -> int:
        return self._deposit_count

    @property
    def withdrawal_count(self) -> int:
        """
        Number of applied withdrawals.

        Incremented with the debit, before the payout. If the transfer then
        fails the increment is undone, so a transfer callback can observe
        N + 1 and a later read N again.
        """
        return self._withdrawal_count

    @property
    def busy_timeout(self) -> Optional[float]:
        return self._guard.timeout

    @property
    def remaining_capacity(self) -> int:
        """How much more the bank can accept before hitting the cap."""
        return self._bank_cap - self._total_balance

    @property
    def guard_state(self) -> GuardState:
        return self._guard.state

    def get_balance(self, principal: str) -> int:
        """
        Get the balance of a principal.

        Never fails: unknown principals have a balance of 0.
        """
        return self.balances.get(principal, 0)

    def list_principals(self) -> Set[str]:
        """List every principal that has ever been credited."""
        return set(self.balances)

    def snapshot(self) -> LedgerSnapshot:
        """
        Capture a consistent copy of the ledger state.

        Waits for an in-flight mutation on another thread; safe to call from
        inside a transfer callback.
        """
        with self._guard.observe():
            return LedgerSnapshot(
                name=self.name,
                total_balance=self._total_balance,
                deposit_count=self._deposit_count,
                withdrawal_count=self._withdrawal_count,
                withdraw_limit=self._withdraw_limit,
                bank_cap=self._bank_cap,
                balances=tuple(sorted(self.balances.items())),
            )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify that the ledger's accounting invariants hold.

        Checks:
        1. total_balance equals the sum of all balances
        2. total_balance does not exceed bank_cap
        3. no balance is negative

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'total_balance': int - The tracked total
            - 'sum_of_balances': int - Sum over all principals
            - 'discrepancies': List[Dict] - One entry per violated invariant

        Example:
            result = bank.verify_conservation()
            assert result['valid'], f"Conservation violated: {result['discrepancies']}"
        """
        with self._guard.observe():
            total = self._total_balance
            summed = sum(self.balances[p] for p in sorted(self.balances))
            discrepancies = []

            if summed != total:
                discrepancies.append({
                    'check': 'total',
                    'expected': summed,
                    'actual': total,
                    'difference': total - summed,
                })
            if total > self._bank_cap:
                discrepancies.append({
                    'check': 'cap',
                    'expected': self._bank_cap,
                    'actual': total,
                    'difference': total - self._bank_cap,
                })
            for principal in sorted(self.balances):
                balance = self.balances[principal]
                if balance < 0:
                    discrepancies.append({
                        'check': 'negative_balance',
                        'principal': principal,
                        'actual': balance,
                    })

        return {
            'valid': len(discrepancies) == 0,
            'total_balance': total,
            'sum_of_balances': summed,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def deposit(self, principal: str, amount: int) -> DepositRecorded:
        """
        Credit a principal.

        Args:
            principal: Account to credit (created on first deposit)
            amount: Positive integer amount

        Returns:
            The DepositRecorded record that was logged and published

        Raises:
            ReentrancyDetected: If called while another mutation is running on this thread
            InvalidPrincipal, InvalidAmount: On malformed input
            CapacityExceeded: If total_balance + amount > bank_cap
        """
        with self._guard.enter("deposit"):
            return self._credit(principal, amount, Origin.DEPOSIT)

    def receive(self, sender: str, amount: int) -> DepositRecorded:
        """
        Direct-receive path: an inbound transfer not routed through deposit().

        Treated as an implicit deposit for the sender, with the same checks.
        """
        with self._guard.enter("receive"):
            return self._credit(sender, amount, Origin.RECEIVE)

    def withdraw(self, principal: str, amount: int) -> WithdrawalRecorded:
        """
        Debit a principal and pay the amount out through the transfer rail.

        Checks run in order: withdraw limit, then balance. The debit is applied
        before the rail is called; if the rail reports failure or raises, the
        debit is restored and TransferFailed is raised.

        Args:
            principal: Account to debit
            amount: Positive integer amount

        Returns:
            The WithdrawalRecorded record that was logged and published

        Raises:
            ReentrancyDetected: If called while another mutation is running on this thread
            InvalidPrincipal, InvalidAmount: On malformed input
            LimitExceeded: If amount > withdraw_limit
            InsufficientFunds: If amount > the principal's balance
            TransferFailed: If the rail did not deliver
        """
        with self._guard.enter("withdraw"):
            validate_principal(principal)
            validate_amount(amount)

            if amount > self._withdraw_limit:
                self._reject("WITHDRAW", principal, amount, f"limit {self._withdraw_limit}")
                raise LimitExceeded(amount, self._withdraw_limit)
            available = self.get_balance(principal)
            if amount > available:
                self._reject("WITHDRAW", principal, amount, f"available {available}")
                raise InsufficientFunds(principal, amount, available)

            # Effects
            self.balances[principal] = available - amount
            self._total_balance -= amount
            self._withdrawal_count += 1

            # Interaction
            try:
                result = self.transfer_rail.transfer(principal, amount)
            except Exception as exc:
                self._restore_debit(principal, amount, available)
                reason = str(exc) or type(exc).__name__
                self._reject("WITHDRAW", principal, amount, f"transfer raised: {reason}")
                raise TransferFailed(principal, amount, reason) from exc
            except BaseException:
                # KeyboardInterrupt, SystemExit: undo the debit, let it through
                self._restore_debit(principal, amount, available)
                raise
            if not isinstance(result, TransferResult) or not result.ok:
                self._restore_debit(principal, amount, available)
                reason = result.reason if isinstance(result, TransferResult) else (
                    f"rail returned {type(result).__name__}"
                )
                self._reject("WITHDRAW", principal, amount, f"transfer failed: {reason}")
                raise TransferFailed(principal, amount, reason)

            record = WithdrawalRecorded(
                principal=principal,
                amount=amount,
                new_balance=self.balances[principal],
                sequence_number=self._take_sequence(),
            )
            self._record(record)
            if self.verbose:
                print(f"✓ WITHDRAW {principal} -{amount} → {record.new_balance} "
                      f"(total {self._total_balance}/{self._bank_cap})")
            return record

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _credit(self, principal: str, amount: int, origin: Origin) -> DepositRecorded:
        """Shared body of deposit() and receive(); caller holds the guard."""
        label = "DEPOSIT" if origin is Origin.DEPOSIT else "RECEIVE"
        validate_principal(principal)
        validate_amount(amount)

        proposed_total = self._total_balance + amount
        if proposed_total > self._bank_cap:
            self._reject(label, principal, amount, f"{proposed_total} > cap {self._bank_cap}")
            raise CapacityExceeded(proposed_total, self._bank_cap)

        new_balance = self.get_balance(principal) + amount
        self.balances[principal] = new_balance
        self._total_balance = proposed_total
        self._deposit_count += 1

        record = DepositRecorded(
            principal=principal,
            amount=amount,
            new_balance=new_balance,
            sequence_number=self._take_sequence(),
            origin=origin,
        )
        self._record(record)
        if self.verbose:
            print(f"✓ {label} {principal} +{amount} → {new_balance} "
                  f"(total {self._total_balance}/{self._bank_cap})")
        return record

    def _restore_debit(self, principal: str, amount: int, previous_balance: int) -> None:
        self.balances[principal] = previous_balance
        self._total_balance += amount
        self._withdrawal_count -= 1

    def _take_sequence(self) -> int:
        sequence = self._next_sequence
        self._next_sequence += 1
        return sequence

    def _record(self, record: LedgerRecord) -> None:
        # Log first (audit trail is mandatory), then notify observers.
        # The operation is already applied; sink failures are kept, never raised.
        self.transaction_log.append(record)
        try:
            self.event_sink.publish(record)
        except Exception as exc:
            self.publish_failures.append((record, exc))
            if self.verbose:
                print(f"⚠️  PUBLISH FAILED #{record.sequence_number} {record.principal}: "
                      f"{type(exc).__name__}: {exc}")

    def _reject(self, label: str, principal: Any, amount: Any, reason: str) -> None:
        if self.verbose:
            print(f"✗ REJECTED {label} {principal} {amount}: {reason}")

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> BoundedLedger:
        """
        Create an independent copy of this ledger.

        Balances, counters and the transaction log are copied; the transfer
        rail and event sink are shared with the original.

        Returns:
            A new BoundedLedger with identical state
        """
        with self._guard.observe():
            cloned = BoundedLedger(
                name=self.name,
                withdraw_limit=self._withdraw_limit,
                bank_cap=self._bank_cap,
                transfer_rail=self.transfer_rail,
                event_sink=self.event_sink,
                verbose=False,
                busy_timeout=self.busy_timeout,
            )
            cloned.verbose = self.verbose
            cloned.balances = dict(self.balances)
            cloned._total_balance = self._total_balance
            cloned._deposit_count = self._deposit_count
            cloned._withdrawal_count = self._withdrawal_count
            cloned.transaction_log = list(self.transaction_log)
            cloned.publish_failures = list(self.publish_failures)
            cloned._next_sequence = self._next_sequence
        return cloned

    def replay(self) -> BoundedLedger:
        """
        Create a new ledger by re-executing the transaction log.

        Withdrawals are paid out through a fresh RecordingRail and records are
        published to a fresh EventLog, so replay has no external effects.

        Returns:
            New BoundedLedger with replayed state

        Raises:
            LedgerError: If any logged operation is rejected during replay
        """
        with self._guard.observe():
            log = list(self.transaction_log)

        replayed = BoundedLedger(
            name=f"{self.name}_replayed",
            withdraw_limit=self._withdraw_limit,
            bank_cap=self._bank_cap,
            transfer_rail=RecordingRail(),
            event_sink=EventLog(),
            verbose=self.verbose,
            busy_timeout=self.busy_timeout,
        )
        for record in log:
            try:
                if isinstance(record, WithdrawalRecorded):
                    replayed.withdraw(record.principal, record.amount)
                elif record.origin is Origin.RECEIVE:
                    replayed.receive(record.principal, record.amount)
                else:
                    replayed.deposit(record.principal, record.amount)
            except LedgerError as exc:
                raise LedgerError(f"Replay failed at record #{record.sequence_number}: {exc}") from exc
        return replayed

    def __repr__(self) -> str:
        return (f"BoundedLedger({self.name!r}, total={self._total_balance}/{self._bank_cap}, "
                f"limit={self._withdraw_limit}, principals={len(self.balances)})")
