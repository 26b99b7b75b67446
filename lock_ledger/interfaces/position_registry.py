"""Position registry protocol — unique id issuance and ownership."""
from typing import Protocol


class PositionRegistry(Protocol):
    """Abstract interface for minting, burning and owning position ids."""

    def mint(self, owner: str) -> int: ...

    def burn(self, position_id: int) -> None: ...

    def owner_of(self, position_id: int) -> str: ...

    def is_owner_or_approved(self, caller: str, position_id: int) -> bool: ...
