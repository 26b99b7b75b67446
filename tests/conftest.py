"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from lock_ledger.access import OwnerGate
from lock_ledger.backends import InMemoryPositionRegistry, InMemoryVault
from lock_ledger.clock import ManualClock
from lock_ledger.config import (
    AppConfig,
    ClockConfig,
    LedgerConfig,
    NotificationsConfig,
    PoolConfig,
    TelegramConfig,
)
from lock_ledger.ledger import LockCoordinator

ADMIN = "0xADMIN"
CUSTODY = "lock-ledger"
POOL = "0xSGL1"
POOL_ASSET = 7
OTHER_POOL = "0xSGL2"
OTHER_POOL_ASSET = 8
START_TIME = 1_700_000_000
LOCK_AMOUNT = 100_000_000


# ---------------------------------------------------------------------------
# Ledger fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(START_TIME)


@pytest.fixture()
def vault() -> InMemoryVault:
    return InMemoryVault()


@pytest.fixture()
def position_registry() -> InMemoryPositionRegistry:
    return InMemoryPositionRegistry()


@pytest.fixture()
def gate() -> OwnerGate:
    return OwnerGate(ADMIN)


@pytest.fixture()
def coordinator(
    vault: InMemoryVault,
    position_registry: InMemoryPositionRegistry,
    gate: OwnerGate,
    clock: ManualClock,
) -> LockCoordinator:
    return LockCoordinator(vault, position_registry, gate, clock, custody_account=CUSTODY)


@pytest.fixture()
def registered(coordinator: LockCoordinator) -> LockCoordinator:
    """Coordinator with POOL (asset 7) and OTHER_POOL (asset 8) registered."""
    coordinator.register_pool(ADMIN, POOL, POOL_ASSET)
    coordinator.register_pool(ADMIN, OTHER_POOL, OTHER_POOL_ASSET)
    return coordinator


def fund(vault: InMemoryVault, account: str, asset_id: int = POOL_ASSET,
         amount: int = LOCK_AMOUNT, approve: bool = True) -> int:
    """Deposit into the vault for ``account`` and approve the ledger's custody account."""
    shares = vault.deposit(asset_id, account, account, amount)
    if approve:
        vault.set_approval_for_all(account, CUSTODY, True)
    return shares


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        ledger=LedgerConfig(administrator=ADMIN, custody_account=CUSTODY),
        clock=ClockConfig(mode="manual", start_time=START_TIME),
        pools=(
            PoolConfig(address=POOL, asset_id=POOL_ASSET),
            PoolConfig(address=OTHER_POOL, asset_id=OTHER_POOL_ASSET),
        ),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    ledger:
      administrator: "0xADMIN"
      custody_account: "lock-ledger"
      allow_unregister_with_deposits: false
    clock:
      mode: manual
      start_time: 1700000000
    pools:
      - address: "0xSGL1"
        asset_id: 7
      - address: "0xSGL2"
        asset_id: 8
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


@pytest.fixture()
def quiet_yaml_path(tmp_path: Path) -> Path:
    """Same ledger as SAMPLE_YAML, with notifications disabled."""
    cfg_file = tmp_path / "quiet.yaml"
    cfg_file.write_text(SAMPLE_YAML.replace("enabled: true", "enabled: false"))
    return cfg_file
