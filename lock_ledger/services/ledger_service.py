"""Wires the ledger and its in-process collaborators from configuration."""
from __future__ import annotations

import logging

from ..access import OwnerGate
from ..backends import InMemoryPositionRegistry, InMemoryVault
from ..clock import ManualClock, SystemClock
from ..config import AppConfig
from ..interfaces.notifier import Notifier
from ..ledger import LockCoordinator
from ..notifications import TelegramNotifier
from .relay import EventRelay

logger = logging.getLogger(__name__)


class LedgerService:
    """Owns one coordinator plus its vault, position registry, gate and clock."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self.administrator = config.ledger.administrator

        if config.clock.mode == "system":
            self.clock: ManualClock | SystemClock = SystemClock()
        else:
            self.clock = ManualClock(config.clock.start_time)

        self.vault = InMemoryVault()
        self.position_registry = InMemoryPositionRegistry()
        self.gate = OwnerGate(config.ledger.administrator)
        self.coordinator = LockCoordinator(
            self.vault,
            self.position_registry,
            self.gate,
            self.clock,
            custody_account=config.ledger.custody_account,
            allow_unregister_with_deposits=config.ledger.allow_unregister_with_deposits,
        )

        notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            notifiers.append(TelegramNotifier(config.notifications.telegram))
        self.relay = EventRelay(notifiers)
        self.coordinator.events.subscribe(self.relay)

    def bootstrap(self) -> None:
        """Register every pool listed in the configuration."""
        for pool in self._config.pools:
            self.coordinator.register_pool(self.administrator, pool.address, pool.asset_id)
        logger.info("Bootstrapped %d pool(s)", len(self._config.pools))

    def pools_report(self) -> str:
        lines = ["Active pools:"]
        pools = self.coordinator.pools.pools()
        if not pools:
            lines.append("  (none)")
        for pool in pools:
            lines.append(
                f"  {pool.pool_address}  asset={pool.asset_id}  "
                f"total_deposited={pool.total_deposited}"
            )
        return "\n".join(lines)

    def positions_report(self) -> str:
        lines = [f"Open positions (token counter {self.coordinator.token_counter}):"]
        count = 0
        for position_id, position in self.coordinator.positions.iter_positions():
            count += 1
            owner = self.position_registry.owner_of(position_id)
            lines.append(
                f"  #{position_id}  owner={owner}  asset={position.asset_id}  "
                f"amount={position.amount}  expiry={position.expiry}"
            )
        if not count:
            lines.append("  (none)")
        return "\n".join(lines)
