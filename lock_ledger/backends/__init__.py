"""In-process implementations of the ledger's external collaborators."""
from .position_registry import InMemoryPositionRegistry
from .vault import InMemoryVault

__all__ = ["InMemoryPositionRegistry", "InMemoryVault"]
