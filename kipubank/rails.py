"""
rails.py - Transfer Rail Implementations

A transfer rail is the ledger's boundary to whatever actually moves the
underlying asset. The ledger only needs transfer(principal, amount) to return
a TransferResult; these implementations cover simulations and tests.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple, Union

from .core import TransferResult, validate_amount, validate_principal


class RecordingRail:
    """
    In-memory rail that records every payout it delivers.

    Args:
        fail_with: If set, every transfer fails with this reason

    Example:
        rail = RecordingRail()
        bank = BoundedLedger("kipu", withdraw_limit=10, bank_cap=100, transfer_rail=rail)
        ...
        rail.paid_to("alice")  # total delivered to alice
    """

    def __init__(self, fail_with: Optional[str] = None):
        self.fail_with = fail_with
        self.payouts: List[Tuple[str, int]] = []
        self.attempts: int = 0
        self._paid: Dict[str, int] = defaultdict(int)
        self._scripted_failures: List[str] = []

    def fail_next(self, reason: str = "scripted failure") -> None:
        """Make the next transfer fail once, then return to normal."""
        self._scripted_failures.append(reason)

    def transfer(self, principal: str, amount: int) -> TransferResult:
        validate_principal(principal)
        validate_amount(amount)
        self.attempts += 1
        if self._scripted_failures:
            return TransferResult.failure(self._scripted_failures.pop(0))
        if self.fail_with is not None:
            return TransferResult.failure(self.fail_with)
        self.payouts.append((principal, amount))
        self._paid[principal] += amount
        return TransferResult.success()

    def paid_to(self, principal: str) -> int:
        """Total amount delivered to a principal."""
        return self._paid.get(principal, 0)

    @property
    def total_paid_out(self) -> int:
        return sum(amount for _, amount in self.payouts)


# Plain-function rail: (principal, amount) -> TransferResult or bool
TransferFunction = Callable[[str, int], Union[TransferResult, bool]]


class CallbackRail:
    """
    Adapt a plain function into a TransferRail.

    The function may return a TransferResult or a bool; False becomes a
    failure with a generic reason. Exceptions propagate to the ledger, which
    treats them as a failed transfer.
    """

    def __init__(self, fn: TransferFunction):
        self.fn = fn

    def transfer(self, principal: str, amount: int) -> TransferResult:
        outcome = self.fn(principal, amount)
        if isinstance(outcome, TransferResult):
            return outcome
        if isinstance(outcome, bool):
            return TransferResult.success() if outcome else TransferResult.failure(
                f"{getattr(self.fn, '__name__', 'callback')} returned False"
            )
        raise TypeError(
            f"Transfer callback must return TransferResult or bool, got {type(outcome).__name__}"
        )
