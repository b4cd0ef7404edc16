"""Unit tests for concurrent per-source processing."""

from __future__ import annotations

import asyncio

import pytest

from newsdesk.agents.fanout import FanOutFailed, check_source_count, fan_out
from newsdesk.core.errors import SourceLimitError
from newsdesk.schemas.aggregate import Source
from newsdesk.schemas.common import TokenUsage


def _processor(failing: set[int] = frozenset(), delays: dict[int, float] | None = None):
    delays = delays or {}

    async def process(source: Source):
        await asyncio.sleep(delays.get(source.number, 0))
        if source.number in failing:
            raise RuntimeError(f"source {source.number} exploded")
        return f"facts {source.number}", [TokenUsage(input_tokens=1, output_tokens=1)]

    return process


class TestFanOut:
    async def test_output_order_matches_input_order(self, sample_sources):
        # later sources finish first
        result = await fan_out(
            sample_sources,
            _processor(delays={1: 0.03, 2: 0.02, 3: 0}),
            output_field="facts_bit_splitting1",
        )
        assert [s.facts_bit_splitting1 for s in result.sources] == ["facts 1", "facts 2", "facts 3"]
        assert len(result.usage) == 3
        assert result.failures == []

    async def test_inputs_are_not_mutated(self, sample_sources):
        await fan_out(sample_sources, _processor(), output_field="facts_bit_splitting1")
        assert all(s.facts_bit_splitting1 == "" for s in sample_sources)

    async def test_first_failure_propagates_by_default(self, sample_sources):
        with pytest.raises(RuntimeError, match="source 2 exploded"):
            await fan_out(sample_sources, _processor(failing={2}), output_field="facts_bit_splitting1")

    async def test_failure_cancels_remaining_sources(self, sample_sources):
        finished: list[int] = []

        async def process(source: Source):
            if source.number == 1:
                raise RuntimeError("provider down")
            await asyncio.sleep(0.05)
            finished.append(source.number)
            return "facts", []

        with pytest.raises(RuntimeError, match="provider down"):
            await fan_out(sample_sources, process, output_field="facts_bit_splitting1")
        await asyncio.sleep(0.1)
        assert finished == []

    async def test_partial_keeps_successes(self, sample_sources):
        result = await fan_out(
            sample_sources,
            _processor(failing={2}),
            output_field="facts_bit_splitting1",
            partial=True,
        )
        assert [s.facts_bit_splitting1 for s in result.sources] == ["facts 1", "", "facts 3"]
        assert [(f.number, f.error) for f in result.failures] == [(2, "source 2 exploded")]
        assert len(result.usage) == 2

    async def test_partial_with_every_source_failing_raises(self, sample_sources):
        with pytest.raises(FanOutFailed):
            await fan_out(
                sample_sources,
                _processor(failing={1, 2, 3}),
                output_field="facts_bit_splitting1",
                partial=True,
            )


class TestCheckSourceCount:
    def test_empty_is_rejected(self):
        with pytest.raises(SourceLimitError):
            check_source_count([], 6)

    def test_over_limit_is_rejected(self):
        with pytest.raises(SourceLimitError, match="at most 6"):
            check_source_count([Source(number=n) for n in range(1, 8)], 6)

    def test_at_limit_is_accepted(self):
        check_source_count([Source(number=n) for n in range(1, 7)], 6)
