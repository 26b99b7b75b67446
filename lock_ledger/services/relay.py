"""Forwards ledger events and failures to notifiers."""
from __future__ import annotations

import logging
import threading

from ..interfaces.notifier import Notifier
from ..models import (
    LedgerEvent,
    PoolRegistered,
    PoolUnregistered,
    PositionCreated,
    PositionReleased,
)

logger = logging.getLogger(__name__)


def format_event(event: LedgerEvent) -> str:
    """Render an event as a one-line notification."""
    if isinstance(event, PoolRegistered):
        return f"🆕 Pool {event.pool_address} registered (asset {event.asset_id})"
    if isinstance(event, PoolUnregistered):
        return f"🗑 Pool {event.pool_address} unregistered (asset {event.asset_id})"
    if isinstance(event, PositionCreated):
        return (
            f"🔒 Position #{event.position_id} locked on asset {event.asset_id} "
            f"for {event.recipient}"
        )
    if isinstance(event, PositionReleased):
        return (
            f"🔓 Position #{event.position_id} released on asset {event.asset_id} "
            f"to {event.recipient}"
        )
    return f"{event.name}: {event}"


class EventRelay:
    """EventLog subscriber that queues messages until :meth:`flush` delivers them.

    Subscribing is synchronous (the ledger never awaits); delivery is async.
    """

    def __init__(self, notifiers: list[Notifier] | None = None) -> None:
        self._notifiers: list[Notifier] = list(notifiers or [])
        self._logs: list[str] = []
        self._alerts: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def __call__(self, event: LedgerEvent) -> None:
        with self._lock:
            self._logs.append(format_event(event))

    def record_failure(self, message: str, subject: str = "⚠️ Ledger operation failed") -> None:
        with self._lock:
            self._alerts.append((message, subject))

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._logs) + len(self._alerts)

    async def flush(self) -> int:
        """Deliver queued messages to every notifier; returns how many were dequeued."""
        with self._lock:
            logs, self._logs = self._logs, []
            alerts, self._alerts = self._alerts, []

        if not self._notifiers:
            return len(logs) + len(alerts)

        for message in logs:
            await self._send_log(message)
        for message, subject in alerts:
            await self._send_alert(message, subject)
        return len(logs) + len(alerts)

    async def _send_log(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=True)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)
