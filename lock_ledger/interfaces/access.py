"""Administrator gate protocol."""
from typing import Protocol


class AdminGate(Protocol):
    """Capability check for privileged pool-registry operations."""

    def is_administrator(self, caller: str) -> bool: ...
