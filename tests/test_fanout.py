"""
Unit tests for the bounded per-node task group
"""

import asyncio

import pytest

from iptb.cluster.fanout import fan_out, failures


class TestFanOut:

    @pytest.mark.asyncio
    async def test_collects_result_per_node(self):
        async def task(index):
            if index == 2:
                raise RuntimeError("boom")
            return index * 10

        results = await fan_out(range(4), task)

        assert [r.index for r in results] == [0, 1, 2, 3]
        assert [r.value for r in results if r.ok] == [0, 10, 30]
        failed = failures(results)
        assert [r.index for r in failed] == [2]
        assert str(failed[0].error) == "boom"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        running = 0
        peak = 0

        async def task(index):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        await fan_out(range(10), task, max_workers=3)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_empty(self):
        async def task(index):
            return index

        assert await fan_out([], task) == []
