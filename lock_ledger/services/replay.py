"""Runs a YAML scenario of ledger operations against a :class:`LedgerService`."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml

from ..clock import ManualClock
from ..errors import ERRORS_BY_CODE, ConfigError, LedgerError
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    index: int
    op: str
    ok: bool
    detail: str = ""
    error_code: str = ""


@dataclass(frozen=True)
class ReplayResult:
    steps: tuple[StepResult, ...] = ()

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps)

    @property
    def failures(self) -> tuple[StepResult, ...]:
        return tuple(s for s in self.steps if not s.ok)


def load_script(path: str | Path) -> list[dict[str, Any]]:
    """Read the ``steps`` list from a scenario file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    steps = raw.get("steps")
    if not isinstance(steps, list):
        raise ConfigError(f"Scenario {path} has no 'steps' list")
    return steps


class Replayer:
    """Applies scenario steps in order; a failing step does not stop the run."""

    def __init__(self, service: LedgerService) -> None:
        self._service = service
        self._ledger = service.coordinator
        self._handlers: dict[str, Callable[[dict[str, Any]], str]] = {
            "deposit": self._deposit,
            "approve_vault": self._approve_vault,
            "accrue": self._accrue,
            "register": self._register,
            "unregister": self._unregister,
            "lock": self._lock,
            "unlock": self._unlock,
            "transfer": self._transfer,
            "approve_position": self._approve_position,
            "advance": self._advance,
        }

    def validate(self, steps: list[dict[str, Any]]) -> None:
        for i, step in enumerate(steps):
            op = step.get("op") if isinstance(step, dict) else None
            if op not in self._handlers:
                raise ConfigError(f"Step {i}: unknown op {op!r}")
            expected = step.get("expect_error")
            if expected is not None and expected not in ERRORS_BY_CODE:
                raise ConfigError(f"Step {i}: unknown error code {expected!r}")

    def run(self, steps: list[dict[str, Any]]) -> ReplayResult:
        self.validate(steps)
        results = [self._run_step(i, step) for i, step in enumerate(steps)]
        return ReplayResult(steps=tuple(results))

    async def run_and_notify(self, steps: list[dict[str, Any]]) -> ReplayResult:
        result = self.run(steps)
        await self._service.relay.flush()
        return result

    def _run_step(self, index: int, step: dict[str, Any]) -> StepResult:
        op = step["op"]
        expected = step.get("expect_error")
        try:
            detail = self._handlers[op](step)
        except LedgerError as e:
            return self._failed(index, op, expected, e)
        except KeyError as e:
            raise ConfigError(f"Step {index} ({op}) is missing field {e}") from e
        except ValueError as e:
            # bad field values (negative clock moves, empty accounts, non-numeric ints)
            return self._failed(index, op, expected, ConfigError(f"Bad value: {e}"))

        if expected is not None:
            logger.error("Step %d (%s) succeeded but expected %s", index, op, expected)
            return StepResult(index, op, False, f"expected {expected}, got success", "")
        logger.info("Step %d (%s): %s", index, op, detail)
        return StepResult(index, op, True, detail)

    def _failed(
        self, index: int, op: str, expected: str | None, error: LedgerError
    ) -> StepResult:
        if error.code == expected:
            logger.info("Step %d (%s) failed as expected: %s", index, op, error.code)
            return StepResult(index, op, True, error.message, error.code)
        logger.error("Step %d (%s) failed: %s", index, op, error)
        self._service.relay.record_failure(f"Step {index} ({op}) failed: {error}")
        return StepResult(index, op, False, error.message, error.code)

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _deposit(self, step: dict[str, Any]) -> str:
        account = step["account"]
        shares = self._service.vault.deposit(
            int(step["asset_id"]), account, account, int(step["amount"]),
            int(step.get("min_shares_out", 0)),
        )
        return f"{account} received {shares} shares"

    def _approve_vault(self, step: dict[str, Any]) -> str:
        operator = step.get("operator", self._ledger.custody_account)
        approved = bool(step.get("approved", True))
        self._service.vault.set_approval_for_all(step["owner"], operator, approved)
        return f"{step['owner']} {'approved' if approved else 'revoked'} {operator}"

    def _accrue(self, step: dict[str, Any]) -> str:
        self._service.vault.accrue(int(step["asset_id"]), int(step["amount"]))
        return f"asset {step['asset_id']} accrued {step['amount']}"

    def _register(self, step: dict[str, Any]) -> str:
        caller = step.get("caller", self._service.administrator)
        self._ledger.register_pool(caller, step["pool"], int(step["asset_id"]))
        return f"registered {step['pool']}"

    def _unregister(self, step: dict[str, Any]) -> str:
        caller = step.get("caller", self._service.administrator)
        self._ledger.unregister_pool(caller, step["pool"])
        return f"unregistered {step['pool']}"

    def _lock(self, step: dict[str, Any]) -> str:
        depositor = step["depositor"]
        position_id = self._ledger.lock(
            depositor,
            step.get("recipient", depositor),
            step["pool"],
            int(step["duration"]),
            int(step["amount"]),
        )
        return f"position {position_id}"

    def _unlock(self, step: dict[str, Any]) -> str:
        caller = step["caller"]
        self._ledger.unlock(
            caller, int(step["position_id"]), step["pool"], step.get("recipient", caller)
        )
        return f"position {step['position_id']} released"

    def _transfer(self, step: dict[str, Any]) -> str:
        caller = step["caller"]
        self._service.position_registry.transfer(
            caller, step.get("sender", caller), step["recipient"], int(step["position_id"])
        )
        return f"position {step['position_id']} -> {step['recipient']}"

    def _approve_position(self, step: dict[str, Any]) -> str:
        self._service.position_registry.approve(
            step["caller"], step["operator"], int(step["position_id"])
        )
        return f"{step['operator']} approved for position {step['position_id']}"

    def _advance(self, step: dict[str, Any]) -> str:
        clock = self._service.clock
        if not isinstance(clock, ManualClock):
            raise ConfigError("'advance' requires clock.mode: manual")
        return f"now {clock.advance(int(step['seconds']))}"


def format_result(result: ReplayResult) -> str:
    lines = []
    for s in result.steps:
        mark = "✅" if s.ok else "❌"
        suffix = f" [{s.error_code}]" if s.error_code else ""
        lines.append(f"{mark} {s.index:>3} {s.op:<16} {s.detail}{suffix}")
    lines.append(f"{len(result.steps) - len(result.failures)}/{len(result.steps)} steps ok")
    return "\n".join(lines)
