"""
RiskVault ledger events.

Every externally observable state change is published as an immutable event
to an EventLog and to any subscribers. The log is an audit surface only; the
ledger never reads its own events back.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class LedgerEvent:
    timestamp: datetime = field(default_factory=_now, kw_only=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.event_type, "timestamp": _iso(self.timestamp)}


@dataclass(frozen=True)
class DataSubmitted(LedgerEvent):
    record_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "record_id": self.record_id}


@dataclass(frozen=True)
class RevealRequested(LedgerEvent):
    target: str
    request_id: str
    record_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "target": self.target, "request_id": self.request_id,
                "record_id": self.record_id}


@dataclass(frozen=True)
class Finalized(LedgerEvent):
    record_id: int
    request_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "record_id": self.record_id, "request_id": self.request_id}


@dataclass(frozen=True)
class AggregateRevealed(LedgerEvent):
    category: str
    count: int
    request_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "category": self.category, "count": self.count,
                "request_id": self.request_id}


EventSubscriber = Callable[[LedgerEvent], None]


class EventLog(ABC):
    """Abstract interface for recording ledger events."""

    @abstractmethod
    def record(self, event: LedgerEvent) -> None:
        pass

    @abstractmethod
    def query(
        self,
        event_type: Optional[Type[LedgerEvent]] = None,
        record_id: Optional[int] = None,
        since: Optional[datetime] = None
    ) -> List[LedgerEvent]:
        pass


class InMemoryEventLog(EventLog):
    """
    In-memory event log with bounded retention.

    Not persistent; suitable for tests and single-process deployments.
    """

    def __init__(self, max_events: int = 10000):
        self._events: List[LedgerEvent] = []
        self._lock = threading.Lock()
        self._max_events = max_events

    def record(self, event: LedgerEvent) -> None:
        with self._lock:
            self._events.append(event)
            if len(self._events) > self._max_events:
                self._events = self._events[-self._max_events:]

    def query(
        self,
        event_type: Optional[Type[LedgerEvent]] = None,
        record_id: Optional[int] = None,
        since: Optional[datetime] = None
    ) -> List[LedgerEvent]:
        with self._lock:
            events = self._events[:]

        if event_type:
            events = [e for e in events if isinstance(e, event_type)]
        if record_id is not None:
            events = [e for e in events if getattr(e, "record_id", None) == record_id]
        if since:
            events = [e for e in events if e.timestamp >= since]
        return events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class EventBus:
    """Fans events out to the log and to subscribers."""

    def __init__(self, log: Optional[EventLog] = None):
        self.log = log if log is not None else InMemoryEventLog()
        self._subscribers: List[EventSubscriber] = []

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, event: LedgerEvent) -> None:
        self.log.record(event)
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                # state is already applied at this point
                logger.exception("event subscriber failed for %s", event.event_type)
