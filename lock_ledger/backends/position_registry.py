"""In-memory unique position id registry with ownership and approvals."""
from __future__ import annotations

import logging
import threading

from ..errors import PositionNotFound, Unauthorized

logger = logging.getLogger(__name__)


class InMemoryPositionRegistry:
    """Issues position ids starting at 0; a burned id is never reissued."""

    def __init__(self) -> None:
        self._next_id = 0
        self._owners: dict[int, str] = {}
        self._approvals: dict[int, str] = {}
        self._operators: set[tuple[str, str]] = set()
        self._lock = threading.RLock()

    def mint(self, owner: str) -> int:
        if not owner:
            raise ValueError("Cannot mint to an empty owner")
        with self._lock:
            position_id = self._next_id
            self._next_id += 1
            self._owners[position_id] = owner
        logger.debug("Minted position %d to %s", position_id, owner)
        return position_id

    def burn(self, position_id: int) -> None:
        with self._lock:
            if position_id not in self._owners:
                raise PositionNotFound(f"Position {position_id} does not exist")
            del self._owners[position_id]
            self._approvals.pop(position_id, None)
        logger.debug("Burned position %d", position_id)

    def owner_of(self, position_id: int) -> str:
        with self._lock:
            try:
                return self._owners[position_id]
            except KeyError:
                raise PositionNotFound(f"Position {position_id} does not exist") from None

    def exists(self, position_id: int) -> bool:
        with self._lock:
            return position_id in self._owners

    def is_owner_or_approved(self, caller: str, position_id: int) -> bool:
        with self._lock:
            owner = self._owners.get(position_id)
            if owner is None:
                return False
            return (
                caller == owner
                or self._approvals.get(position_id) == caller
                or (owner, caller) in self._operators
            )

    def approve(self, caller: str, operator: str, position_id: int) -> None:
        """Approve ``operator`` for a single position; cleared on transfer or burn."""
        with self._lock:
            owner = self.owner_of(position_id)
            if caller != owner and (owner, caller) not in self._operators:
                raise Unauthorized(f"{caller} cannot approve position {position_id}")
            self._approvals[position_id] = operator

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        with self._lock:
            if approved:
                self._operators.add((owner, operator))
            else:
                self._operators.discard((owner, operator))

    def transfer(self, caller: str, sender: str, recipient: str, position_id: int) -> None:
        if not recipient:
            raise ValueError("Cannot transfer to an empty recipient")
        with self._lock:
            if self.owner_of(position_id) != sender:
                raise Unauthorized(f"{sender} does not own position {position_id}")
            if not self.is_owner_or_approved(caller, position_id):
                raise Unauthorized(f"{caller} is not owner nor approved for {position_id}")
            self._owners[position_id] = recipient
            self._approvals.pop(position_id, None)
        logger.info("Position %d transferred %s -> %s", position_id, sender, recipient)

    def balance_of(self, owner: str) -> int:
        with self._lock:
            return sum(1 for o in self._owners.values() if o == owner)

    @property
    def next_id(self) -> int:
        with self._lock:
            return self._next_id
