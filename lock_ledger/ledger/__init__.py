"""Time-locked position ledger core."""
from .coordinator import LockCoordinator
from .pools import PoolRegistry
from .positions import PositionLedger

__all__ = ["LockCoordinator", "PoolRegistry", "PositionLedger"]
