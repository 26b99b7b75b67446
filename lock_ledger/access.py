"""Single-owner administrator gate."""
from __future__ import annotations

import logging

from .errors import Unauthorized

logger = logging.getLogger(__name__)


class OwnerGate:
    """Grants the administrator capability to exactly one principal."""

    def __init__(self, owner: str) -> None:
        if not owner:
            raise ValueError("Owner must be a non-empty principal")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_administrator(self, caller: str) -> bool:
        return caller == self._owner

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if not self.is_administrator(caller):
            raise Unauthorized(f"{caller} is not the owner")
        if not new_owner:
            raise ValueError("New owner must be a non-empty principal")
        logger.info("Ownership transferred from %s to %s", self._owner, new_owner)
        self._owner = new_owner
