"""Notifier protocol — destination for relayed ledger events and alerts."""
from typing import Protocol


class Notifier(Protocol):
    """Channel that receives formatted ledger activity."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
