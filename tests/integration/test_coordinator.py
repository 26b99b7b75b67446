"""Integration tests for lock / unlock workflows across vault, registry and ledger."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import (
    ADMIN,
    CUSTODY,
    LOCK_AMOUNT,
    OTHER_POOL,
    OTHER_POOL_ASSET,
    POOL,
    POOL_ASSET,
    START_TIME,
    fund,
)

from lock_ledger.access import OwnerGate
from lock_ledger.backends import InMemoryPositionRegistry, InMemoryVault
from lock_ledger.clock import ManualClock
from lock_ledger.errors import (
    AccountingUnderflow,
    InvalidAmount,
    InvalidDuration,
    LockNotExpired,
    OutstandingDeposits,
    PoolMismatch,
    PoolNotActive,
    PositionExists,
    PositionNotFound,
    Unauthorized,
    VaultError,
)
from lock_ledger.ledger import LockCoordinator
from lock_ledger.models import LockPosition, PositionCreated, PositionReleased


class TestInitialState:
    def test_empty(self, coordinator: LockCoordinator) -> None:
        assert coordinator.list_active_asset_ids() == []
        assert coordinator.token_counter == 0
        assert coordinator.get_position(0) == LockPosition()


class TestLockValidation:
    def test_zero_duration(self, registered: LockCoordinator, vault: InMemoryVault) -> None:
        fund(vault, "alice")
        with pytest.raises(InvalidDuration):
            registered.lock("alice", "alice", POOL, 0, LOCK_AMOUNT)

    def test_zero_amount(self, registered: LockCoordinator, vault: InMemoryVault) -> None:
        fund(vault, "alice")
        with pytest.raises(InvalidAmount):
            registered.lock("alice", "alice", POOL, 1, 0)

    def test_unregistered_pool(self, registered: LockCoordinator, vault: InMemoryVault) -> None:
        fund(vault, "alice")
        with pytest.raises(PoolNotActive):
            registered.lock("alice", "alice", "0xNOPE", 1, LOCK_AMOUNT)

    def test_each_check_is_independent(self, registered: LockCoordinator) -> None:
        # every bad input on its own is rejected, even with the others valid
        with pytest.raises(InvalidDuration):
            registered.lock("alice", "alice", "0xNOPE", 0, 0)
        with pytest.raises(InvalidAmount):
            registered.lock("alice", "alice", "0xNOPE", 1, 0)
        with pytest.raises(PoolNotActive):
            registered.lock("alice", "alice", "0xNOPE", 1, 1)
        assert registered.token_counter == 0


class TestLock:
    def test_creates_position(
        self,
        registered: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
    ) -> None:
        fund(vault, "alice")
        expected_shares = vault.to_share(POOL_ASSET, LOCK_AMOUNT, False)

        position_id = registered.lock("alice", "alice", POOL, 1, LOCK_AMOUNT)

        assert position_id == 0
        assert registered.token_counter == 1
        assert position_registry.owner_of(0) == "alice"
        assert vault.balance_of(CUSTODY, POOL_ASSET) == expected_shares
        assert vault.balance_of("alice", POOL_ASSET) == 0

        position = registered.get_position(0)
        assert position.amount == LOCK_AMOUNT
        assert position.lock_duration == 1
        assert position.lock_time == START_TIME
        assert position.asset_id == POOL_ASSET
        assert registered.get_lock(0) == (True, position)
        assert registered.pool_of(POOL).total_deposited == LOCK_AMOUNT

    def test_emits_created_event(self, registered: LockCoordinator, vault: InMemoryVault) -> None:
        fund(vault, "alice")
        registered.lock("alice", "bob", POOL, 5, LOCK_AMOUNT)
        assert registered.events.of_type(PositionCreated) == [
            PositionCreated(recipient="bob", asset_id=POOL_ASSET, position_id=0)
        ]

    def test_recipient_owns_position(
        self,
        registered: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
    ) -> None:
        fund(vault, "alice")
        pid = registered.lock("alice", "bob", POOL, 5, LOCK_AMOUNT)
        assert position_registry.owner_of(pid) == "bob"

    def test_totals_accumulate_per_pool(self, registered: LockCoordinator, vault: InMemoryVault) -> None:
        fund(vault, "alice", amount=3 * LOCK_AMOUNT)
        fund(vault, "bob", asset_id=OTHER_POOL_ASSET)
        registered.lock("alice", "alice", POOL, 5, LOCK_AMOUNT)
        registered.lock("alice", "alice", POOL, 5, 2 * LOCK_AMOUNT)
        registered.lock("bob", "bob", OTHER_POOL, 5, LOCK_AMOUNT)
        assert registered.pool_of(POOL).total_deposited == 3 * LOCK_AMOUNT
        assert registered.pool_of(OTHER_POOL).total_deposited == LOCK_AMOUNT
        assert registered.token_counter == 3


class TestLockRollback:
    def test_vault_refusal_leaves_no_trace(
        self,
        registered: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
    ) -> None:
        fund(vault, "alice", approve=False)
        with pytest.raises(VaultError):
            registered.lock("alice", "alice", POOL, 5, LOCK_AMOUNT)

        assert position_registry.next_id == 0
        assert registered.token_counter == 0
        assert registered.pool_of(POOL).total_deposited == 0
        assert registered.events.of_type(PositionCreated) == []

    def test_mint_failure_returns_shares(self, vault: InMemoryVault, clock: ManualClock) -> None:
        failing_registry = MagicMock()
        failing_registry.mint.side_effect = RuntimeError("registry offline")
        coordinator = LockCoordinator(
            vault, failing_registry, OwnerGate(ADMIN), clock, custody_account=CUSTODY
        )
        coordinator.register_pool(ADMIN, POOL, POOL_ASSET)
        shares = fund(vault, "alice")

        with pytest.raises(RuntimeError, match="registry offline"):
            coordinator.lock("alice", "alice", POOL, 5, LOCK_AMOUNT)

        assert vault.balance_of("alice", POOL_ASSET) == shares
        assert vault.balance_of(CUSTODY, POOL_ASSET) == 0
        assert coordinator.pool_of(POOL).total_deposited == 0

    def test_ledger_failure_burns_minted_id(
        self,
        registered: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
    ) -> None:
        shares = fund(vault, "alice")
        # occupy the id the registry will hand out next
        registered.positions.create(0, 1, 1, POOL_ASSET, START_TIME)

        with pytest.raises(PositionExists):
            registered.lock("alice", "alice", POOL, 5, LOCK_AMOUNT)

        assert not position_registry.exists(0)
        assert vault.balance_of("alice", POOL_ASSET) == shares
        assert registered.get_position(0).amount == 1
        assert registered.pool_of(POOL).total_deposited == 0


@pytest.fixture()
def locked(registered: LockCoordinator, vault: InMemoryVault) -> LockCoordinator:
    """Position 0: alice locked LOCK_AMOUNT in POOL for 10 seconds."""
    fund(vault, "alice")
    registered.lock("alice", "alice", POOL, 10, LOCK_AMOUNT)
    return registered


class TestUnlockValidation:
    def test_before_expiry(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(9)
        with pytest.raises(LockNotExpired):
            locked.unlock("alice", 0, POOL, "alice")

    def test_missing_position(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10)
        with pytest.raises(PositionNotFound):
            locked.unlock("alice", 1, POOL, "alice")

    def test_wrong_pool(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10)
        with pytest.raises(PoolMismatch):
            locked.unlock("alice", 0, OTHER_POOL, "alice")

    def test_unknown_pool_address(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10)
        with pytest.raises(PoolMismatch):
            locked.unlock("alice", 0, "0xNOPE", "alice")

    def test_stranger(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10)
        with pytest.raises(Unauthorized):
            locked.unlock("bob", 0, POOL, "bob")
        assert locked.get_position(0).amount == LOCK_AMOUNT


class TestUnlock:
    def test_full_cycle(
        self,
        locked: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
        clock: ManualClock,
    ) -> None:
        assert locked.pool_of(POOL).total_deposited == LOCK_AMOUNT
        clock.advance(10)

        locked.unlock("alice", 0, POOL, "alice")

        assert locked.events.of_type(PositionReleased) == [
            PositionReleased(recipient="alice", asset_id=POOL_ASSET, position_id=0)
        ]
        assert locked.get_position(0) == LockPosition()
        assert locked.get_lock(0) == (False, LockPosition())
        assert not position_registry.exists(0)
        with pytest.raises(PositionNotFound):
            position_registry.owner_of(0)
        assert locked.pool_of(POOL).total_deposited == 0
        assert vault.balance_of("alice", POOL_ASSET) == vault.to_share(POOL_ASSET, LOCK_AMOUNT, False)

    def test_unlock_after_expiry_long_past(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10_000)
        locked.unlock("alice", 0, POOL, "alice")
        assert locked.pool_of(POOL).total_deposited == 0

    def test_cannot_unlock_twice(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10)
        locked.unlock("alice", 0, POOL, "alice")
        with pytest.raises(PositionNotFound):
            locked.unlock("alice", 0, POOL, "alice")

    def test_release_to_other_recipient(
        self, locked: LockCoordinator, vault: InMemoryVault, clock: ManualClock
    ) -> None:
        clock.advance(10)
        locked.unlock("alice", 0, POOL, "carol")
        assert vault.balance_of("carol", POOL_ASSET) > 0
        assert vault.balance_of("alice", POOL_ASSET) == 0

    def test_approved_operator_may_unlock(
        self,
        locked: LockCoordinator,
        position_registry: InMemoryPositionRegistry,
        clock: ManualClock,
    ) -> None:
        position_registry.approve("alice", "bob", 0)
        clock.advance(10)
        locked.unlock("bob", 0, POOL, "alice")
        assert not position_registry.exists(0)

    def test_transferred_position_unlocks_for_new_owner(
        self,
        locked: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
        clock: ManualClock,
    ) -> None:
        position_registry.transfer("alice", "alice", "dave", 0)
        clock.advance(10)
        with pytest.raises(Unauthorized):
            locked.unlock("alice", 0, POOL, "alice")
        locked.unlock("dave", 0, POOL, "dave")
        assert vault.balance_of("dave", POOL_ASSET) == vault.to_share(POOL_ASSET, LOCK_AMOUNT, False)

    def test_releases_current_share_value_after_yield(
        self, locked: LockCoordinator, vault: InMemoryVault, clock: ManualClock
    ) -> None:
        locked_shares = vault.balance_of(CUSTODY, POOL_ASSET)
        vault.accrue(POOL_ASSET, LOCK_AMOUNT)
        clock.advance(10)

        locked.unlock("alice", 0, POOL, "alice")

        released = vault.balance_of("alice", POOL_ASSET)
        assert released == vault.to_share(POOL_ASSET, LOCK_AMOUNT, False)
        assert released < locked_shares
        assert vault.balance_of(CUSTODY, POOL_ASSET) == locked_shares - released


class TestUnlockRollback:
    def test_burn_failure_restores_everything(
        self, vault: InMemoryVault, clock: ManualClock
    ) -> None:
        registry = InMemoryPositionRegistry()
        coordinator = LockCoordinator(vault, registry, OwnerGate(ADMIN), clock, custody_account=CUSTODY)
        coordinator.register_pool(ADMIN, POOL, POOL_ASSET)
        fund(vault, "alice")
        coordinator.lock("alice", "alice", POOL, 10, LOCK_AMOUNT)
        custody_before = vault.balance_of(CUSTODY, POOL_ASSET)
        clock.advance(10)

        registry.burn = MagicMock(side_effect=RuntimeError("burn rejected"))  # type: ignore[method-assign]
        with pytest.raises(RuntimeError, match="burn rejected"):
            coordinator.unlock("alice", 0, POOL, "alice")

        assert coordinator.get_position(0).amount == LOCK_AMOUNT
        assert coordinator.pool_of(POOL).total_deposited == LOCK_AMOUNT
        assert vault.balance_of(CUSTODY, POOL_ASSET) == custody_before
        assert vault.balance_of("alice", POOL_ASSET) == 0
        assert registry.owner_of(0) == "alice"
        assert coordinator.events.of_type(PositionReleased) == []

    def test_accounting_underflow_surfaces(
        self, locked: LockCoordinator, clock: ManualClock
    ) -> None:
        # corrupt the pool total behind the ledger's back
        locked.pools.set_total_deposited(POOL, LOCK_AMOUNT - 1)
        clock.advance(10)
        with pytest.raises(AccountingUnderflow):
            locked.unlock("alice", 0, POOL, "alice")
        assert locked.get_position(0).amount == LOCK_AMOUNT


class TestPoolLifecycleWithPositions:
    def test_unregister_blocked_while_locked(self, locked: LockCoordinator) -> None:
        with pytest.raises(OutstandingDeposits):
            locked.unregister_pool(ADMIN, POOL)
        assert locked.list_active_asset_ids() == [POOL_ASSET, OTHER_POOL_ASSET]

    def test_unregister_after_unlock(self, locked: LockCoordinator, clock: ManualClock) -> None:
        clock.advance(10)
        locked.unlock("alice", 0, POOL, "alice")
        locked.unregister_pool(ADMIN, POOL)
        assert locked.list_active_asset_ids() == [OTHER_POOL_ASSET]

    def test_permissive_unregister_strands_positions(
        self,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
        clock: ManualClock,
    ) -> None:
        coordinator = LockCoordinator(
            vault, position_registry, OwnerGate(ADMIN), clock,
            custody_account=CUSTODY, allow_unregister_with_deposits=True,
        )
        coordinator.register_pool(ADMIN, POOL, POOL_ASSET)
        coordinator.register_pool(ADMIN, "0xSGL9", 99)
        fund(vault, "alice")
        coordinator.lock("alice", "alice", POOL, 10, LOCK_AMOUNT)

        coordinator.unregister_pool(ADMIN, POOL)
        # same address re-registered for a different asset
        coordinator.register_pool(ADMIN, POOL, 42)
        clock.advance(10)

        with pytest.raises(PoolMismatch):
            coordinator.unlock("alice", 0, POOL, "alice")
        with pytest.raises(PoolMismatch):
            coordinator.unlock("alice", 0, "0xSGL9", "alice")

    def test_reregistering_same_asset_resumes_stranded_positions(
        self,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
        clock: ManualClock,
    ) -> None:
        coordinator = LockCoordinator(
            vault, position_registry, OwnerGate(ADMIN), clock,
            custody_account=CUSTODY, allow_unregister_with_deposits=True,
        )
        coordinator.register_pool(ADMIN, POOL, POOL_ASSET)
        shares = fund(vault, "alice")
        coordinator.lock("alice", "alice", POOL, 10, LOCK_AMOUNT)

        coordinator.unregister_pool(ADMIN, POOL)
        coordinator.register_pool(ADMIN, POOL, POOL_ASSET)
        assert coordinator.pool_of(POOL).total_deposited == LOCK_AMOUNT
        clock.advance(10)

        coordinator.unlock("alice", 0, POOL, "alice")

        assert coordinator.pool_of(POOL).total_deposited == 0
        assert vault.balance_of("alice", POOL_ASSET) == shares
        assert not coordinator.positions.is_position_active(0)


class TestScenario:
    def test_register_lock_wait_unlock(
        self,
        coordinator: LockCoordinator,
        vault: InMemoryVault,
        position_registry: InMemoryPositionRegistry,
        clock: ManualClock,
    ) -> None:
        coordinator.register_pool(ADMIN, POOL, 7)
        fund(vault, "U", asset_id=7, amount=100_000_000)

        pid = coordinator.lock("U", "U", POOL, 10, 100_000_000)
        assert pid == 0
        assert coordinator.pool_of(POOL).total_deposited == 100_000_000

        clock.advance(10)
        coordinator.unlock("U", 0, POOL, "U")

        assert coordinator.events.events[-1] == PositionReleased("U", 7, 0)
        assert coordinator.pool_of(POOL).total_deposited == 0
        assert not position_registry.is_owner_or_approved("U", 0)
