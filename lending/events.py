"""
events.py - In-process collaborators for events and asset movement

EventLog: EventSink that keeps an ordered, sequence-numbered audit trail.
InMemoryAssetTransfer: AssetTransfer that tracks attached deposits and payouts
per user, for simulations and tests that have no real asset behind them.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional

from .core import EventType, LendingEvent, ZeroAmountError


class EventLog:
    """
    Append-only record of LendingEvents.

    Each notified event is stamped with the next sequence number, so the log
    order is the commit order.
    """

    def __init__(self):
        self.events: List[LendingEvent] = []

    def notify(self, event: LendingEvent) -> None:
        self.events.append(replace(event, sequence=len(self.events)))

    def for_user(self, user: str) -> List[LendingEvent]:
        return [e for e in self.events if e.user == user]

    def of_type(self, event_type: EventType) -> List[LendingEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def total(self, event_type: EventType, user: Optional[str] = None) -> int:
        """Sum of amounts for one event type, optionally restricted to a user."""
        return sum(
            e.amount for e in self.events
            if e.event_type == event_type and (user is None or e.user == user)
        )

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def __repr__(self):
        return f"EventLog({len(self.events)} events)"


class InMemoryAssetTransfer:
    """
    Bookkeeping stand-in for real asset movement.

    attach() stages value a user sends with their next supply or repay call;
    receive_in() consumes it. pay_out() records value sent back to the user.
    """

    def __init__(self):
        self.attached: Dict[str, int] = defaultdict(int)
        self.received: Dict[str, int] = defaultdict(int)
        self.paid_out: Dict[str, int] = defaultdict(int)

    def attach(self, user: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmountError(f"attached amount must be positive, got {amount}")
        self.attached[user] += amount

    def receive_in(self, user: str) -> int:
        amount = self.attached.pop(user, 0)
        self.received[user] += amount
        return amount

    def pay_out(self, user: str, amount: int) -> None:
        self.paid_out[user] += amount

    def net_flow(self, user: str) -> int:
        """Value received from `user` minus value paid out to them."""
        return self.received[user] - self.paid_out[user]

    def pool_balance(self) -> int:
        """Asset held by the pool: everything received minus everything paid out."""
        return sum(self.received.values()) - sum(self.paid_out.values())

    def __repr__(self):
        return f"InMemoryAssetTransfer(pool_balance={self.pool_balance()})"
