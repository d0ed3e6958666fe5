"""
guard.py - Reentrancy Guard

Two-state guard (IDLE / BUSY) protecting a single ledger instance.

    IDLE --enter--> BUSY --exit (success or failure)--> IDLE
    BUSY --enter from the owning thread--> ReentrancyDetected

Entry from a different thread is not an error: it waits for the guard to
become idle, so mutations are serialised across threads while a synchronous
re-entry (a transfer callback calling back into the ledger) fails fast.

A callback that hands the re-entry to another thread and waits for it would
deadlock with an unbounded wait. Rails and sinks should call back on the
same thread; a guard built with a timeout turns that case into
ReentrancyDetected instead.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional
import threading

from .core import GuardState, ReentrancyDetected, _check_timeout


class ReentrancyGuard:
    """
    Per-ledger mutual exclusion with same-thread re-entry detection.

    Args:
        timeout: Seconds enter() waits for another thread's mutation before
            raising ReentrancyDetected. None waits indefinitely.

    Example:
        guard = ReentrancyGuard()
        with guard.enter("withdraw"):
            ...  # a nested guard.enter() on this thread raises ReentrancyDetected
    """

    def __init__(self, timeout: Optional[float] = None):
        _check_timeout(timeout)
        self.timeout = timeout
        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self._operation: Optional[str] = None

    @property
    def state(self) -> GuardState:
        return GuardState.BUSY if self._owner is not None else GuardState.IDLE

    @property
    def operation(self) -> Optional[str]:
        """Name of the operation currently holding the guard, if any."""
        return self._operation

    def held_by_current_thread(self) -> bool:
        return self._owner == threading.get_ident()

    @contextmanager
    def enter(self, operation: str) -> Iterator[None]:
        """
        Hold the guard for the duration of a mutating operation.

        Args:
            operation: Name of the operation, reported in ReentrancyDetected

        Raises:
            ReentrancyDetected: If the calling thread already holds the guard,
                or the guard stayed busy for longer than the timeout
        """
        if self.held_by_current_thread():
            raise ReentrancyDetected(operation)
        if self.timeout is None:
            self._lock.acquire()
        elif not self._lock.acquire(timeout=self.timeout):
            raise ReentrancyDetected(operation)
        self._owner = threading.get_ident()
        self._operation = operation
        try:
            yield
        finally:
            self._owner = None
            self._operation = None
            self._lock.release()

    @contextmanager
    def observe(self) -> Iterator[None]:
        """
        Hold the guard for a consistent read.

        A no-op when the calling thread is already inside a mutation (a
        transfer callback reading the ledger), otherwise waits for any
        in-flight mutation on another thread to finish.
        """
        if self.held_by_current_thread():
            yield
            return
        with self._lock:
            yield
