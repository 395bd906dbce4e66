"""Tests for concurrent aggregation and its two failure policies."""

from __future__ import annotations

import asyncio

import pytest

from homelab.errors import AggregationError, ErrorKind, FailureReason, ValidationError
from homelab.models.commands import CommandSpec, Success
from homelab.services.aggregator import (
    AggregationPolicy,
    AggregationUnit,
    Aggregator,
)
from homelab.utils.cli_parser import JsonShape, decode_lines, json_decoder
from tests.mock_cli import MockRunner, diagnostics


def unit(key: str, *args: str, required: bool = True, default=None, decoder=decode_lines):
    return AggregationUnit(
        key=key,
        spec=CommandSpec(program="tool", arguments=args),
        decoder=decoder,
        required=required,
        default=default,
    )


@pytest.fixture
def runner():
    r = MockRunner()
    r.add_response("tool a", "alpha\n")
    r.add_response("tool b", "bravo\n")
    r.add_response("tool c", "charlie\n")
    return r


class TestAllOrNothing:
    @pytest.mark.asyncio
    async def test_all_succeed(self, runner):
        result = await Aggregator(runner).aggregate(
            [unit("a", "a"), unit("b", "b")], AggregationPolicy.all_or_nothing,
        )
        assert result.outcomes == {"a": ["alpha"], "b": ["bravo"]}

    @pytest.mark.asyncio
    async def test_required_failure_collapses(self, runner):
        runner.fail("tool b", stderr="boom")
        with pytest.raises(AggregationError) as exc_info:
            await Aggregator(runner).aggregate(
                [unit("a", "a"), unit("b", "b"), unit("c", "c")],
                AggregationPolicy.all_or_nothing,
            )
        assert exc_info.value.key == "b"
        assert "boom" in exc_info.value.message
        assert exc_info.value.kind is ErrorKind.non_zero_exit
        # Siblings still ran to completion.
        assert sorted(runner.calls) == ["tool a", "tool b", "tool c"]

    @pytest.mark.asyncio
    async def test_timeout_collapses(self, runner):
        runner.timeout("tool a", limit=1.0)
        with pytest.raises(AggregationError) as exc_info:
            await Aggregator(runner).aggregate(
                [unit("a", "a")], AggregationPolicy.all_or_nothing,
            )
        assert exc_info.value.kind is ErrorKind.timeout

    @pytest.mark.asyncio
    async def test_decode_failure_collapses(self, runner):
        with pytest.raises(AggregationError) as exc_info:
            await Aggregator(runner).aggregate(
                [unit("a", "a", decoder=json_decoder(None, JsonShape.object))],
                AggregationPolicy.all_or_nothing,
            )
        assert exc_info.value.kind is ErrorKind.parse_error

    @pytest.mark.asyncio
    async def test_optional_failure_uses_default(self, runner):
        runner.fail("tool b")
        result = await Aggregator(runner).aggregate(
            [unit("a", "a"), unit("b", "b", required=False, default=[])],
            AggregationPolicy.all_or_nothing,
        )
        assert result.outcomes == {"a": ["alpha"], "b": []}

    @pytest.mark.asyncio
    async def test_diagnostics_count_as_success(self, runner):
        runner.add_outcome("tool a", diagnostics("alpha\n"))
        result = await Aggregator(runner).aggregate(
            [unit("a", "a")], AggregationPolicy.all_or_nothing,
        )
        assert result.outcomes["a"] == ["alpha"]


class TestIsolatePerUnit:
    @pytest.mark.asyncio
    async def test_failure_recorded_per_key(self, runner):
        runner.fail("tool b", stderr="gone")
        result = await Aggregator(runner).aggregate(
            [unit("a", "a"), unit("b", "b"), unit("c", "c")],
            AggregationPolicy.isolate_per_unit,
        )
        assert result.outcomes["a"] == ["alpha"]
        assert result.outcomes["c"] == ["charlie"]
        assert isinstance(result.outcomes["b"], FailureReason)
        assert result.failed("b")
        assert not result.failed("a")

    @pytest.mark.asyncio
    async def test_optional_failure_never_surfaces(self, runner):
        runner.fail("tool b")
        result = await Aggregator(runner).aggregate(
            [unit("a", "a"), unit("b", "b", required=False, default="n/a")],
            AggregationPolicy.isolate_per_unit,
        )
        assert result.outcomes["b"] == "n/a"
        assert not result.failed("b")


class TestOrderingAndConcurrency:
    @pytest.mark.asyncio
    async def test_outcomes_follow_unit_order(self):
        class SlowFirst(MockRunner):
            async def run(self, spec: CommandSpec):
                await asyncio.sleep(0.05 if spec.arguments == ("a",) else 0)
                return Success(stdout=f"{spec.arguments[0]}\n")

        units = [unit("a", "a"), unit("b", "b"), unit("c", "c")]
        first = await Aggregator(SlowFirst()).aggregate(units, AggregationPolicy.isolate_per_unit)
        second = await Aggregator(SlowFirst()).aggregate(units, AggregationPolicy.isolate_per_unit)
        assert list(first.outcomes) == ["a", "b", "c"]
        assert first.outcomes == second.outcomes
        assert first.values() == [["a"], ["b"], ["c"]]

    @pytest.mark.asyncio
    async def test_units_run_concurrently(self):
        class Tracking(MockRunner):
            def __init__(self) -> None:
                super().__init__()
                self.active = 0
                self.peak = 0

            async def run(self, spec: CommandSpec):
                self.active += 1
                self.peak = max(self.peak, self.active)
                await asyncio.sleep(0.01)
                self.active -= 1
                return Success(stdout="ok\n")

        r = Tracking()
        units = [unit(f"u{i}", str(i)) for i in range(5)]
        await Aggregator(r, max_concurrency=10).aggregate(units, AggregationPolicy.all_or_nothing)
        assert r.peak == 5

    @pytest.mark.asyncio
    async def test_concurrency_cap(self):
        class Tracking(MockRunner):
            def __init__(self) -> None:
                super().__init__()
                self.active = 0
                self.peak = 0

            async def run(self, spec: CommandSpec):
                self.active += 1
                self.peak = max(self.peak, self.active)
                await asyncio.sleep(0.01)
                self.active -= 1
                return Success(stdout="ok\n")

        r = Tracking()
        units = [unit(f"u{i}", str(i)) for i in range(6)]
        result = await Aggregator(r, max_concurrency=2).aggregate(
            units, AggregationPolicy.isolate_per_unit,
        )
        assert r.peak == 2
        assert len(result.outcomes) == 6

    @pytest.mark.asyncio
    async def test_duplicate_keys_rejected_before_running(self, runner):
        with pytest.raises(ValidationError, match="Duplicate"):
            await Aggregator(runner).aggregate(
                [unit("a", "a"), unit("a", "b")], AggregationPolicy.isolate_per_unit,
            )
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_fetch_returns_value(self, runner):
        assert await Aggregator(runner).fetch(unit("a", "a")) == ["alpha"]

    @pytest.mark.asyncio
    async def test_raising_runner_becomes_failure_after_siblings_finish(self):
        finished: list[str] = []

        class Exploding(MockRunner):
            async def run(self, spec: CommandSpec):
                if spec.arguments == ("bad",):
                    raise RuntimeError("runner blew up")
                await asyncio.sleep(0.02)
                finished.append(spec.arguments[0])
                return Success(stdout="ok\n")

        units = [unit("a", "a"), unit("bad", "bad"), unit("c", "c")]
        result = await Aggregator(Exploding()).aggregate(
            units, AggregationPolicy.isolate_per_unit,
        )
        assert sorted(finished) == ["a", "c"]
        assert result.outcomes["bad"].kind is ErrorKind.spawn_failure
        assert "runner blew up" in result.outcomes["bad"].message

        finished.clear()
        with pytest.raises(AggregationError) as exc_info:
            await Aggregator(Exploding()).aggregate(units, AggregationPolicy.all_or_nothing)
        assert exc_info.value.key == "bad"
        assert sorted(finished) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_unexpected_decoder_error_is_parse_failure(self, runner):
        def first_field(output: str) -> str:
            return output.split()[5]

        result = await Aggregator(runner).aggregate(
            [unit("a", "a", decoder=first_field)], AggregationPolicy.isolate_per_unit,
        )
        assert result.outcomes["a"].kind is ErrorKind.parse_error

    @pytest.mark.asyncio
    async def test_empty_units(self, runner):
        result = await Aggregator(runner).aggregate([], AggregationPolicy.all_or_nothing)
        assert result.outcomes == {}
