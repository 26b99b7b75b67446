"""Registry of approved singularity pools."""
from __future__ import annotations

import logging
import threading
from dataclasses import replace

from ..errors import (
    AlreadyRegistered,
    InvalidAssetId,
    NotRegistered,
    OutstandingDeposits,
    PoolNotActive,
    Unauthorized,
)
from ..events import EventLog
from ..interfaces.access import AdminGate
from ..models import Pool, PoolRegistered, PoolUnregistered

logger = logging.getLogger(__name__)


class PoolRegistry:
    """Active pools keyed by address, plus the ordered list of their asset ids.

    At most one pool is active per asset id. Mutations hold ``lock``, which the
    coordinator shares so pool lookups and accounting updates stay atomic.
    """

    def __init__(
        self,
        gate: AdminGate,
        events: EventLog,
        lock: threading.RLock | None = None,
        allow_unregister_with_deposits: bool = False,
    ) -> None:
        self._gate = gate
        self._events = events
        self._lock = lock or threading.RLock()
        self._allow_unregister_with_deposits = allow_unregister_with_deposits
        self._pools: dict[str, Pool] = {}
        self._asset_ids: list[int] = []
        self._asset_to_pool: dict[int, str] = {}
        # totals left behind by permissive unregistration, keyed by asset id
        self._stranded: dict[int, int] = {}

    def _require_admin(self, caller: str) -> None:
        if not self._gate.is_administrator(caller):
            raise Unauthorized(f"{caller} is not the administrator")

    def register_pool(self, caller: str, pool_address: str, asset_id: int) -> None:
        self._require_admin(caller)
        if asset_id <= 0:
            raise InvalidAssetId(f"Asset id must be > 0, got {asset_id}")

        with self._lock:
            if pool_address in self._pools:
                raise AlreadyRegistered(f"Pool {pool_address} already registered")
            other = self._asset_to_pool.get(asset_id)
            if other is not None:
                raise AlreadyRegistered(f"Asset {asset_id} already active for pool {other}")

            carried = self._stranded.pop(asset_id, 0)
            self._pools[pool_address] = Pool(
                pool_address=pool_address, asset_id=asset_id, total_deposited=carried
            )
            self._asset_ids.append(asset_id)
            self._asset_to_pool[asset_id] = pool_address
            self._events.emit(PoolRegistered(pool_address=pool_address, asset_id=asset_id))

        logger.info("Registered pool %s (asset %d)", pool_address, asset_id)
        if carried:
            logger.info(
                "Pool %s resumes %d locked under asset %d", pool_address, carried, asset_id
            )

    def unregister_pool(self, caller: str, pool_address: str) -> None:
        self._require_admin(caller)

        with self._lock:
            pool = self._pools.get(pool_address)
            if pool is None:
                raise NotRegistered(f"Pool {pool_address} not registered")
            if pool.total_deposited > 0:
                if not self._allow_unregister_with_deposits:
                    raise OutstandingDeposits(
                        f"Pool {pool_address} still holds {pool.total_deposited} in open locks"
                    )
                logger.warning(
                    "Unregistering pool %s with %d still locked; those positions "
                    "unlock once asset %d is registered again",
                    pool_address, pool.total_deposited, pool.asset_id,
                )
                self._stranded[pool.asset_id] = (
                    self._stranded.get(pool.asset_id, 0) + pool.total_deposited
                )

            # list.remove keeps the relative order of the remaining ids
            self._asset_ids.remove(pool.asset_id)
            del self._asset_to_pool[pool.asset_id]
            del self._pools[pool_address]
            self._events.emit(PoolUnregistered(pool_address=pool_address, asset_id=pool.asset_id))

        logger.info("Unregistered pool %s (asset %d)", pool_address, pool.asset_id)

    def list_active_asset_ids(self) -> list[int]:
        with self._lock:
            return list(self._asset_ids)

    def pool_of(self, pool_address: str) -> Pool | None:
        with self._lock:
            return self._pools.get(pool_address)

    def pool_for_asset(self, asset_id: int) -> str | None:
        with self._lock:
            return self._asset_to_pool.get(asset_id)

    def pools(self) -> list[Pool]:
        """Active pools in registration order."""
        with self._lock:
            return [self._pools[self._asset_to_pool[a]] for a in self._asset_ids]

    def set_total_deposited(self, pool_address: str, total: int) -> None:
        with self._lock:
            pool = self._pools.get(pool_address)
            if pool is None:
                raise PoolNotActive(f"Pool {pool_address} not active")
            self._pools[pool_address] = replace(pool, total_deposited=total)
