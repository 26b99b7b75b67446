"""Lock positions keyed by position id, and their pool accounting."""
from __future__ import annotations

import logging
import threading
from typing import Iterator

from ..errors import AccountingUnderflow, InvalidAmount, PoolNotActive, PositionExists
from ..models import LockPosition, Pool
from .pools import PoolRegistry

logger = logging.getLogger(__name__)

_ABSENT = LockPosition()


class PositionLedger:
    """Stores one :class:`LockPosition` per outstanding lock.

    A missing id reads back as the all-zero record rather than raising, so
    callers test ``get(id).amount == 0`` (or ``is_position_active``).
    """

    def __init__(self, pools: PoolRegistry, lock: threading.RLock | None = None) -> None:
        self._pools = pools
        self._lock = lock or threading.RLock()
        self._positions: dict[int, LockPosition] = {}
        self._next_position_id = 0

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def create(
        self,
        position_id: int,
        amount: int,
        lock_duration: int,
        asset_id: int,
        lock_time: int,
    ) -> None:
        with self._lock:
            if self._positions.get(position_id, _ABSENT).is_active:
                raise PositionExists(f"Position {position_id} already recorded")
            self._positions[position_id] = LockPosition(
                amount=amount,
                lock_duration=lock_duration,
                lock_time=lock_time,
                asset_id=asset_id,
            )
            self._next_position_id = max(self._next_position_id, position_id + 1)

    def get(self, position_id: int) -> LockPosition:
        with self._lock:
            return self._positions.get(position_id, _ABSENT)

    def get_lock(self, position_id: int) -> tuple[bool, LockPosition]:
        position = self.get(position_id)
        return position.is_active, position

    def is_position_active(self, position_id: int) -> bool:
        return self.get(position_id).is_active

    def clear(self, position_id: int) -> None:
        with self._lock:
            self._positions.pop(position_id, None)

    def iter_positions(self) -> Iterator[tuple[int, LockPosition]]:
        """Yield active positions in id order."""
        with self._lock:
            snapshot = [
                (pid, self._positions[pid])
                for pid in range(self._next_position_id)
                if pid in self._positions
            ]
        yield from snapshot

    @property
    def next_position_id(self) -> int:
        with self._lock:
            return self._next_position_id

    # ------------------------------------------------------------------
    # Pool accounting
    # ------------------------------------------------------------------

    def accumulate(self, pool_address: str, delta: int) -> None:
        if delta < 0:
            raise InvalidAmount(f"Deposit delta must be >= 0, got {delta}")
        with self._lock:
            pool = self._require_pool(pool_address)
            self._pools.set_total_deposited(pool_address, pool.total_deposited + delta)

    def release(self, pool_address: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Released amount must be >= 0, got {amount}")
        with self._lock:
            pool = self._require_pool(pool_address)
            if amount > pool.total_deposited:
                logger.error(
                    "Accounting underflow on pool %s: releasing %d of %d",
                    pool_address, amount, pool.total_deposited,
                )
                raise AccountingUnderflow(
                    f"Pool {pool_address} holds {pool.total_deposited}, cannot release {amount}"
                )
            self._pools.set_total_deposited(pool_address, pool.total_deposited - amount)

    def _require_pool(self, pool_address: str) -> Pool:
        pool = self._pools.pool_of(pool_address)
        if pool is None:
            raise PoolNotActive(f"Pool {pool_address} not active")
        return pool
