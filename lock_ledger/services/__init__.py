"""Service modules"""
from .ledger_service import LedgerService
from .relay import EventRelay
from .replay import Replayer

__all__ = ["LedgerService", "EventRelay", "Replayer"]
