"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Pool:
    """A registered singularity pool and its running deposit total."""

    pool_address: str
    asset_id: int
    total_deposited: int = 0


@dataclass(frozen=True)
class LockPosition:
    """A time-locked deposit. The all-zero record means "does not exist"."""

    amount: int = 0
    lock_duration: int = 0
    lock_time: int = 0
    asset_id: int = 0

    @property
    def expiry(self) -> int:
        return self.lock_time + self.lock_duration

    @property
    def is_active(self) -> bool:
        return self.amount > 0


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolRegistered:
    pool_address: str
    asset_id: int

    name = "PoolRegistered"


@dataclass(frozen=True)
class PoolUnregistered:
    pool_address: str
    asset_id: int

    name = "PoolUnregistered"


@dataclass(frozen=True)
class PositionCreated:
    recipient: str
    asset_id: int
    position_id: int
    aux_data: tuple[Any, ...] = ()

    name = "PositionCreated"


@dataclass(frozen=True)
class PositionReleased:
    recipient: str
    asset_id: int
    position_id: int
    aux_data: tuple[Any, ...] = ()

    name = "PositionReleased"


LedgerEvent = PoolRegistered | PoolUnregistered | PositionCreated | PositionReleased
