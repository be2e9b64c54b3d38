"""
events.py - Observable Contract Events

Events are just data; subscribers are just functions. A contract appends an
event to its EventLog only after the operation that produced it commits, so
observers never see events from rolled-back operations.

Core concepts:
1. EventType: the closed set of things a vesting contract announces
2. VestingEvent: immutable record of one announcement
3. EventLog: append-only list with simple filtering and subscriber callbacks
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional


class EventType(Enum):
    """Kinds of events a vesting contract emits."""
    ALLOCATION_CHANGED = "allocation_changed"
    FUNDS_ADDED = "funds_added"
    ACTIVATED = "activated"
    CLAIMED = "claimed"
    DECISION_TOGGLED = "decision_toggled"
    EMERGENCY_RELEASED = "emergency_released"
    EMERGENCY_CLAIMED = "emergency_claimed"
    RECOVERED = "recovered"
    PROJECT_ROLE_TRANSFERRED = "project_role_transferred"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"


@dataclass(frozen=True, slots=True)
class VestingEvent:
    """
    Immutable record of one emitted event.

    Attributes:
        event_type: What happened
        actor: Identity that called the operation
        timestamp: Ledger time the operation ran at
        beneficiary: Affected beneficiary, where there is one
        amount: Units involved (entitlement, claimed units, recovered units)
        asset: Asset the amount is denominated in, where relevant
        params: Extra details as frozen (key, value) pairs
    """
    event_type: EventType
    actor: str
    timestamp: datetime
    beneficiary: Optional[str] = None
    amount: int = 0
    asset: Optional[str] = None
    params: tuple = ()

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    def __repr__(self) -> str:
        parts = [self.event_type.name, f"by={self.actor}"]
        if self.beneficiary:
            parts.append(f"for={self.beneficiary}")
        if self.amount:
            parts.append(f"amount={self.amount}{' ' + self.asset if self.asset else ''}")
        for k, v in self.params:
            parts.append(f"{k}={v}")
        return f"Event({', '.join(parts)})"


Subscriber = Callable[[VestingEvent], None]


class EventLog:
    """Append-only event history of one contract instance."""

    def __init__(self):
        self._events: List[VestingEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for every future event.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def publish(self, event: VestingEvent) -> None:
        self._events.append(event)
        for callback in list(self._subscribers):
            callback(event)

    def of_type(self, event_type: EventType) -> List[VestingEvent]:
        return [e for e in self._events if e.event_type is event_type]

    def for_beneficiary(self, beneficiary: str) -> List[VestingEvent]:
        return [e for e in self._events if e.beneficiary == beneficiary]

    @property
    def last(self) -> Optional[VestingEvent]:
        return self._events[-1] if self._events else None

    def __iter__(self) -> Iterator[VestingEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
