"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .ledger.coordinator import DEFAULT_CUSTODY_ACCOUNT

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    administrator: str = ""
    custody_account: str = DEFAULT_CUSTODY_ACCOUNT
    allow_unregister_with_deposits: bool = False


@dataclass(frozen=True)
class ClockConfig:
    mode: str = "manual"
    start_time: int = 0


@dataclass(frozen=True)
class PoolConfig:
    address: str = ""
    asset_id: int = 0


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    clock: ClockConfig = field(default_factory=ClockConfig)
    pools: tuple[PoolConfig, ...] = ()
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _as_bool(value: Any) -> bool:
    # Interpolated env vars arrive as strings
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_ledger(raw: dict[str, Any]) -> LedgerConfig:
    return LedgerConfig(
        administrator=str(raw.get("administrator", "")),
        custody_account=str(raw.get("custody_account", DEFAULT_CUSTODY_ACCOUNT)),
        allow_unregister_with_deposits=_as_bool(
            raw.get("allow_unregister_with_deposits", False)
        ),
    )


def _build_clock(raw: dict[str, Any]) -> ClockConfig:
    return ClockConfig(
        mode=str(raw.get("mode", "manual")),
        start_time=int(raw.get("start_time", 0)),
    )


def _build_pools(raw: list[dict[str, Any]]) -> tuple[PoolConfig, ...]:
    pools: list[PoolConfig] = []
    for p in raw:
        pools.append(
            PoolConfig(
                address=str(p.get("address", "")),
                asset_id=int(p.get("asset_id", 0)),
            )
        )
    return tuple(pools)


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram") or {}
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=_as_bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    try:
        cfg = AppConfig(
            ledger=_build_ledger(raw.get("ledger") or {}),
            clock=_build_clock(raw.get("clock") or {}),
            pools=_build_pools(raw.get("pools") or []),
            notifications=_build_notifications(raw.get("notifications") or {}),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Malformed config {config_path}: {e}") from e

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.ledger.administrator:
        raise ConfigError("ledger.administrator must be set")
    if not cfg.ledger.custody_account:
        raise ConfigError("ledger.custody_account must be set")
    if cfg.ledger.custody_account == cfg.ledger.administrator:
        raise ConfigError("ledger.custody_account must differ from the administrator")

    if cfg.clock.mode not in ("manual", "system"):
        raise ConfigError(f"Unknown clock mode '{cfg.clock.mode}'")

    seen_addresses: set[str] = set()
    seen_assets: set[int] = set()
    for pool in cfg.pools:
        if not pool.address:
            raise ConfigError("Pool entry has no address")
        if pool.asset_id <= 0:
            raise ConfigError(f"Pool '{pool.address}' has invalid asset_id {pool.asset_id}")
        if pool.address in seen_addresses:
            raise ConfigError(f"Pool '{pool.address}' listed twice")
        if pool.asset_id in seen_assets:
            raise ConfigError(f"Asset {pool.asset_id} assigned to more than one pool")
        seen_addresses.add(pool.address)
        seen_assets.add(pool.asset_id)
