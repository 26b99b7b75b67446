"""Lock / unlock workflows over the vault, position registry and ledger.

Each workflow runs under one re-entrant lock shared with the pool registry and
the position ledger. Every completed step pushes a compensating action onto an
``ExitStack``; the stack is discarded with ``pop_all()`` once all steps have
committed, otherwise it unwinds in reverse and the original error propagates.
"""
from __future__ import annotations

import logging
import threading
from contextlib import ExitStack

from ..errors import (
    InvalidAmount,
    InvalidDuration,
    LockNotExpired,
    PoolMismatch,
    PoolNotActive,
    PositionNotFound,
    Unauthorized,
)
from ..events import EventLog
from ..interfaces.access import AdminGate
from ..interfaces.clock import Clock
from ..interfaces.position_registry import PositionRegistry
from ..interfaces.vault import Vault
from ..models import LockPosition, Pool, PositionCreated, PositionReleased
from .pools import PoolRegistry
from .positions import PositionLedger

logger = logging.getLogger(__name__)

DEFAULT_CUSTODY_ACCOUNT = "lock-ledger"


class LockCoordinator:
    """Single entry point for pool registration and position lifecycles."""

    def __init__(
        self,
        vault: Vault,
        position_registry: PositionRegistry,
        gate: AdminGate,
        clock: Clock,
        events: EventLog | None = None,
        custody_account: str = DEFAULT_CUSTODY_ACCOUNT,
        allow_unregister_with_deposits: bool = False,
    ) -> None:
        self._vault = vault
        self._registry = position_registry
        self._clock = clock
        self._lock = threading.RLock()
        self.custody_account = custody_account
        self.events = events if events is not None else EventLog()
        self.pools = PoolRegistry(
            gate,
            self.events,
            lock=self._lock,
            allow_unregister_with_deposits=allow_unregister_with_deposits,
        )
        self.positions = PositionLedger(self.pools, lock=self._lock)

    # ------------------------------------------------------------------
    # Pool registry
    # ------------------------------------------------------------------

    def register_pool(self, caller: str, pool_address: str, asset_id: int) -> None:
        self.pools.register_pool(caller, pool_address, asset_id)

    def unregister_pool(self, caller: str, pool_address: str) -> None:
        self.pools.unregister_pool(caller, pool_address)

    def pool_of(self, pool_address: str) -> Pool | None:
        return self.pools.pool_of(pool_address)

    def list_active_asset_ids(self) -> list[int]:
        return self.pools.list_active_asset_ids()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_position(self, position_id: int) -> LockPosition:
        return self.positions.get(position_id)

    def get_lock(self, position_id: int) -> tuple[bool, LockPosition]:
        return self.positions.get_lock(position_id)

    @property
    def token_counter(self) -> int:
        return self.positions.next_position_id

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def lock(
        self,
        depositor: str,
        recipient: str,
        pool_address: str,
        lock_duration: int,
        amount: int,
    ) -> int:
        """Lock ``amount`` of the pool's asset from ``depositor`` and mint a position to ``recipient``.

        The depositor must have approved ``custody_account`` as an operator in
        the vault. Returns the new position id.
        """
        if lock_duration <= 0:
            raise InvalidDuration("Lock duration must be > 0")
        if amount <= 0:
            raise InvalidAmount("Amount must be > 0")

        with self._lock:
            pool = self.pools.pool_of(pool_address)
            if pool is None:
                raise PoolNotActive(f"Pool {pool_address} not active")
            asset_id = pool.asset_id

            try:
                with ExitStack() as undo:
                    shares = self._vault.to_share(asset_id, amount, False)
                    self._vault.transfer(
                        self.custody_account, depositor, self.custody_account, asset_id, shares
                    )
                    undo.callback(
                        self._vault.transfer,
                        self.custody_account, self.custody_account, depositor, asset_id, shares,
                    )

                    position_id = self._registry.mint(recipient)
                    undo.callback(self._registry.burn, position_id)

                    self.positions.create(
                        position_id, amount, lock_duration, asset_id, self._clock.now()
                    )
                    undo.callback(self.positions.clear, position_id)

                    self.positions.accumulate(pool_address, amount)
                    undo.pop_all()
            except Exception as e:
                logger.warning("Lock on pool %s by %s rolled back: %s", pool_address, depositor, e)
                raise

            self.events.emit(
                PositionCreated(recipient=recipient, asset_id=asset_id, position_id=position_id)
            )

        logger.info(
            "Locked %d of asset %d for %ds as position %d (owner %s)",
            amount, asset_id, lock_duration, position_id, recipient,
        )
        return position_id

    def unlock(self, caller: str, position_id: int, pool_address: str, recipient: str) -> None:
        """Release an expired position's value to ``recipient`` and burn its id."""
        with self._lock:
            position = self.positions.get(position_id)
            if not position.is_active:
                raise PositionNotFound(f"Position {position_id} does not exist")

            now = self._clock.now()
            if now < position.expiry:
                raise LockNotExpired(
                    f"Position {position_id} unlocks at {position.expiry}, now {now}"
                )

            pool = self.pools.pool_of(pool_address)
            current_asset_id = pool.asset_id if pool is not None else 0
            if position.asset_id != current_asset_id:
                raise PoolMismatch(
                    f"Position {position_id} is for asset {position.asset_id}, "
                    f"pool {pool_address} holds asset {current_asset_id}"
                )

            if not self._registry.is_owner_or_approved(caller, position_id):
                raise Unauthorized(f"{caller} is not owner nor approved for {position_id}")

            asset_id = position.asset_id
            try:
                with ExitStack() as undo:
                    self.positions.clear(position_id)
                    undo.callback(
                        self.positions.create,
                        position_id,
                        position.amount,
                        position.lock_duration,
                        asset_id,
                        position.lock_time,
                    )

                    self.positions.release(pool_address, position.amount)
                    undo.callback(self.positions.accumulate, pool_address, position.amount)

                    shares = self._vault.to_share(asset_id, position.amount, False)
                    self._vault.transfer(
                        self.custody_account, self.custody_account, recipient, asset_id, shares
                    )
                    undo.callback(
                        self._vault.transfer,
                        recipient, recipient, self.custody_account, asset_id, shares,
                    )

                    # Burning cannot be compensated, so it commits last.
                    self._registry.burn(position_id)
                    undo.pop_all()
            except Exception as e:
                logger.warning("Unlock of position %d rolled back: %s", position_id, e)
                raise

            self.events.emit(
                PositionReleased(recipient=recipient, asset_id=asset_id, position_id=position_id)
            )

        logger.info(
            "Unlocked position %d: %d of asset %d released to %s",
            position_id, position.amount, asset_id, recipient,
        )
