"""Concurrent fan-out of command + decode pipelines.

An aggregation runs every :class:`AggregationUnit` at once (bounded by a
semaphore) and combines the results under one of two explicit policies:

* ``all_or_nothing`` – any failed *required* unit turns the whole call into
  an :class:`AggregationError`; partial outcomes are never handed back.
* ``isolate_per_unit`` – each unit's failure is recorded against its key and
  the aggregation as a whole still succeeds.

Units marked ``required=False`` never fail the call under either policy;
their ``default`` stands in for the missing value.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict

from homelab.config import Settings, settings
from homelab.errors import (
    AggregationError,
    ErrorKind,
    FailureReason,
    HomelabError,
    ValidationError,
)
from homelab.models.commands import CommandSpec
from homelab.services.command_runner import Outcome, command_runner
from homelab.utils.logging import get_logger

log = get_logger(__name__)


class AggregationPolicy(str, Enum):
    all_or_nothing = "all_or_nothing"
    isolate_per_unit = "isolate_per_unit"


class Runner(Protocol):
    async def run(self, spec: CommandSpec) -> Outcome: ...


class AggregationUnit(BaseModel):
    """One independently executed command + decoder pipeline."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    spec: CommandSpec
    decoder: Callable[[str], Any]
    required: bool = True
    default: Any = None


class AggregationResult(BaseModel):
    policy: AggregationPolicy
    outcomes: dict[str, Any]

    def failed(self, key: str) -> bool:
        return isinstance(self.outcomes.get(key), FailureReason)

    def values(self) -> list[Any]:
        """Outcomes in unit order."""
        return list(self.outcomes.values())


class _UnitResult:
    __slots__ = ("value", "reason")

    def __init__(self, value: Any = None, reason: Optional[FailureReason] = None) -> None:
        self.value = value
        self.reason = reason


class Aggregator:
    """Runs units concurrently and applies the selected failure policy."""

    def __init__(
        self,
        runner: Runner | None = None,
        cfg: Settings | None = None,
        *,
        max_concurrency: int | None = None,
    ) -> None:
        self._runner = runner or command_runner
        self._cfg = cfg or settings
        self._max_concurrency = max_concurrency or self._cfg.max_concurrent_commands

    @property
    def runner(self) -> Runner:
        return self._runner

    async def aggregate(
        self,
        units: Sequence[AggregationUnit],
        policy: AggregationPolicy,
    ) -> AggregationResult:
        keys = [u.key for u in units]
        if len(set(keys)) != len(keys):
            dupes = sorted({k for k in keys if keys.count(k) > 1})
            raise ValidationError(f"Duplicate aggregation keys: {', '.join(dupes)}")

        # Spawn everything before awaiting anything; one slot per subprocess.
        sem = asyncio.Semaphore(self._max_concurrency)
        results: list[_UnitResult] = await asyncio.gather(
            *(self._run_unit(unit, sem) for unit in units),
        )

        outcomes: dict[str, Any] = {}
        for unit, res in zip(units, results):
            if res.reason is None:
                outcomes[unit.key] = res.value
                continue
            if not unit.required:
                log.warning(
                    "aggregate.optional_unit_failed",
                    key=unit.key, kind=res.reason.kind.value, error=res.reason.message,
                )
                outcomes[unit.key] = unit.default
                continue
            if policy is AggregationPolicy.all_or_nothing:
                log.warning(
                    "aggregate.failed",
                    key=unit.key, kind=res.reason.kind.value, error=res.reason.message,
                )
                raise AggregationError(unit.key, res.reason)
            log.info(
                "aggregate.unit_failed",
                key=unit.key, kind=res.reason.kind.value, error=res.reason.message,
            )
            outcomes[unit.key] = res.reason

        log.debug("aggregate.done", policy=policy.value, units=len(units))
        return AggregationResult(policy=policy, outcomes=outcomes)

    async def fetch(self, unit: AggregationUnit) -> Any:
        """Run a single unit all-or-nothing and return its decoded value."""
        result = await self.aggregate([unit], AggregationPolicy.all_or_nothing)
        return result.outcomes[unit.key]

    # ── helpers ───────────────────────────────────────────────────────

    async def _run_unit(
        self,
        unit: AggregationUnit,
        sem: asyncio.Semaphore,
    ) -> _UnitResult:
        try:
            async with sem:
                outcome = await self._runner.run(unit.spec)
        except Exception as exc:
            log.error("aggregate.runner_raised", key=unit.key, error=repr(exc))
            return _UnitResult(reason=FailureReason(
                kind=ErrorKind.spawn_failure,
                message=f"Command failed: {unit.spec.display}\n{exc}",
            ))
        if not outcome.ok:
            return _UnitResult(reason=outcome.reason)
        try:
            return _UnitResult(value=unit.decoder(outcome.stdout))
        except HomelabError as exc:
            return _UnitResult(reason=exc.reason)
        except Exception as exc:
            log.warning("aggregate.decode_failed", key=unit.key, error=repr(exc))
            return _UnitResult(
                reason=FailureReason(kind=ErrorKind.parse_error, message=str(exc)),
            )


# Singleton
aggregator = Aggregator()
