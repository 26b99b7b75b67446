"""Ledger error taxonomy. Every failure is raised synchronously to the caller."""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger failures.

    ``code`` is a stable identifier used by the replayer and in relayed alerts.
    """

    code = "ledger_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class Unauthorized(LedgerError):
    code = "unauthorized"


class AlreadyRegistered(LedgerError):
    code = "already_registered"


class NotRegistered(LedgerError):
    code = "not_registered"


class InvalidAssetId(LedgerError):
    code = "invalid_asset_id"


class OutstandingDeposits(LedgerError):
    code = "outstanding_deposits"


class InvalidDuration(LedgerError):
    code = "invalid_duration"


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class PoolNotActive(LedgerError):
    code = "pool_not_active"


class PositionNotFound(LedgerError):
    code = "position_not_found"


class PositionExists(LedgerError):
    code = "position_exists"


class LockNotExpired(LedgerError):
    code = "lock_not_expired"


class PoolMismatch(LedgerError):
    code = "pool_mismatch"


class AccountingUnderflow(LedgerError):
    code = "accounting_underflow"


class VaultError(LedgerError):
    code = "vault_error"


class ConfigError(LedgerError, ValueError):
    code = "config_error"


# Lookup used by the replayer to match ``expect_error`` entries.
ERRORS_BY_CODE: dict[str, type[LedgerError]] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        AlreadyRegistered,
        NotRegistered,
        InvalidAssetId,
        OutstandingDeposits,
        InvalidDuration,
        InvalidAmount,
        PoolNotActive,
        PositionNotFound,
        PositionExists,
        LockNotExpired,
        PoolMismatch,
        AccountingUnderflow,
        VaultError,
        ConfigError,
    )
}
