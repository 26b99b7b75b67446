"""Vault protocol — custody and amount/share accounting."""
from typing import Protocol


class Vault(Protocol):
    """Abstract interface for the share-accounting custody service."""

    def deposit(
        self,
        asset_id: int,
        payer: str,
        beneficiary: str,
        amount: int,
        min_shares_out: int = 0,
    ) -> int: ...

    def balance_of(self, holder: str, asset_id: int) -> int: ...

    def to_share(self, asset_id: int, amount: int, round_up: bool) -> int: ...

    def to_amount(self, asset_id: int, share: int, round_up: bool) -> int: ...

    def transfer(
        self, operator: str, sender: str, recipient: str, asset_id: int, shares: int
    ) -> None: ...

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None: ...
