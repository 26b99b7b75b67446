"""Protocol interfaces for the lock ledger's collaborators."""
from .access import AdminGate
from .clock import Clock
from .notifier import Notifier
from .position_registry import PositionRegistry
from .vault import Vault

__all__ = ["AdminGate", "Clock", "Notifier", "PositionRegistry", "Vault"]
