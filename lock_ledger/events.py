"""In-process event log with synchronous subscribers."""
from __future__ import annotations

import logging
import threading
from typing import Callable

from .models import LedgerEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[LedgerEvent], None]


class EventLog:
    """Ordered record of every event emitted by the ledger."""

    def __init__(self) -> None:
        self._events: list[LedgerEvent] = []
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, event: LedgerEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.debug("Event %s %s", event.name, event)
        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception as e:
                logger.error("Event subscriber failed on %s: %s", event.name, e)

    @property
    def events(self) -> list[LedgerEvent]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: type) -> list[LedgerEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def __len__(self) -> int:
        return len(self._events)
