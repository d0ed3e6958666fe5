"""
sinks.py - Event Sink Implementations

Sinks receive DepositRecorded / WithdrawalRecorded records after each
successful mutation. They are publish-only: nothing flows back into the ledger.
"""

from __future__ import annotations
from typing import Callable, Iterator, List, Tuple

from .core import DepositRecorded, EventSink, LedgerRecord, WithdrawalRecorded


class EventLog:
    """Append-only in-memory list of published records."""

    def __init__(self):
        self._records: List[LedgerRecord] = []

    def publish(self, record: LedgerRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> Tuple[LedgerRecord, ...]:
        return tuple(self._records)

    def deposits(self) -> List[DepositRecorded]:
        return [r for r in self._records if isinstance(r, DepositRecorded)]

    def withdrawals(self) -> List[WithdrawalRecorded]:
        return [r for r in self._records if isinstance(r, WithdrawalRecorded)]

    def for_principal(self, principal: str) -> List[LedgerRecord]:
        return [r for r in self._records if r.principal == principal]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LedgerRecord]:
        return iter(tuple(self._records))


class CallbackSink:
    """Forward every record to a plain function."""

    def __init__(self, fn: Callable[[LedgerRecord], None]):
        self.fn = fn

    def publish(self, record: LedgerRecord) -> None:
        self.fn(record)


class FanOutSink:
    """
    Publish each record to several sinks, in registration order.

    Example:
        log = EventLog()
        sink = FanOutSink(log, CallbackSink(print))
    """

    def __init__(self, *sinks: EventSink):
        self.sinks: List[EventSink] = list(sinks)

    def add(self, sink: EventSink) -> None:
        self.sinks.append(sink)

    def publish(self, record: LedgerRecord) -> None:
        for sink in self.sinks:
            sink.publish(record)
