"""In-memory share-accounting vault."""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass

from ..errors import InvalidAmount, VaultError

logger = logging.getLogger(__name__)

# Virtual share offset applied to every conversion so the first depositor
# cannot inflate the share price.
VIRTUAL_SHARES = 10**8


@dataclass
class _AssetTotals:
    total_amount: int = 0
    total_shares: int = 0


def _to_share(amount: int, total_shares: int, total_amount: int, round_up: bool) -> int:
    total_amount += 1
    total_shares += VIRTUAL_SHARES
    share = amount * total_shares // total_amount
    if round_up and share * total_amount // total_shares < amount:
        share += 1
    return share


def _to_amount(share: int, total_shares: int, total_amount: int, round_up: bool) -> int:
    total_amount += 1
    total_shares += VIRTUAL_SHARES
    amount = share * total_amount // total_shares
    if round_up and amount * total_shares // total_amount < share:
        amount += 1
    return amount


class InMemoryVault:
    """Custodies assets as shares, keyed by ``(holder, asset_id)``.

    Asset ids are opaque and created lazily on first use. Payers are not
    debited: the vault only tracks what has been deposited into it.
    """

    def __init__(self) -> None:
        self._totals: dict[int, _AssetTotals] = defaultdict(_AssetTotals)
        self._balances: dict[tuple[str, int], int] = defaultdict(int)
        self._operators: set[tuple[str, str]] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_share(self, asset_id: int, amount: int, round_up: bool) -> int:
        with self._lock:
            t = self._totals.get(asset_id, _AssetTotals())
            return _to_share(amount, t.total_shares, t.total_amount, round_up)

    def to_amount(self, asset_id: int, share: int, round_up: bool) -> int:
        with self._lock:
            t = self._totals.get(asset_id, _AssetTotals())
            return _to_amount(share, t.total_shares, t.total_amount, round_up)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def deposit(
        self,
        asset_id: int,
        payer: str,
        beneficiary: str,
        amount: int,
        min_shares_out: int = 0,
    ) -> int:
        """Deposit ``amount`` on behalf of ``payer`` and credit shares to ``beneficiary``."""
        if amount <= 0:
            raise InvalidAmount("Deposit amount must be > 0")

        with self._lock:
            t = self._totals[asset_id]
            shares = _to_share(amount, t.total_shares, t.total_amount, False)
            if shares < min_shares_out:
                raise VaultError(
                    f"Deposit of {amount} yields {shares} shares, below minimum {min_shares_out}"
                )
            t.total_amount += amount
            t.total_shares += shares
            self._balances[(beneficiary, asset_id)] += shares

        logger.debug(
            "Vault deposit asset=%d payer=%s beneficiary=%s amount=%d shares=%d",
            asset_id, payer, beneficiary, amount, shares,
        )
        return shares

    def transfer(
        self, operator: str, sender: str, recipient: str, asset_id: int, shares: int
    ) -> None:
        """Move shares between holders; ``operator`` must be the sender or approved."""
        if shares < 0:
            raise InvalidAmount("Cannot transfer a negative share count")

        with self._lock:
            if operator != sender and (sender, operator) not in self._operators:
                raise VaultError(f"{operator} is not approved to move shares of {sender}")
            balance = self._balances[(sender, asset_id)]
            if balance < shares:
                raise VaultError(
                    f"Insufficient shares: {sender} holds {balance} of asset {asset_id}, needs {shares}"
                )
            self._balances[(sender, asset_id)] = balance - shares
            self._balances[(recipient, asset_id)] += shares

        logger.debug(
            "Vault transfer asset=%d %s -> %s shares=%d", asset_id, sender, recipient, shares
        )

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        with self._lock:
            if approved:
                self._operators.add((owner, operator))
            else:
                self._operators.discard((owner, operator))

    def accrue(self, asset_id: int, amount: int) -> None:
        """Add yield to an asset's underlying total, raising its share price."""
        if amount <= 0:
            raise InvalidAmount("Accrued amount must be > 0")
        with self._lock:
            self._totals[asset_id].total_amount += amount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balance_of(self, holder: str, asset_id: int) -> int:
        with self._lock:
            return self._balances.get((holder, asset_id), 0)

    def totals(self, asset_id: int) -> tuple[int, int]:
        """Return ``(total_amount, total_shares)`` for an asset."""
        with self._lock:
            t = self._totals.get(asset_id, _AssetTotals())
            return t.total_amount, t.total_shares

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        with self._lock:
            return (owner, operator) in self._operators
