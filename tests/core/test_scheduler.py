"""Tests for the batch scheduler."""

import asyncio

import pytest


class TestChunk:
    """Tests for chunk()."""

    def test_even_and_remainder(self):
        from bugscout.core.scheduler import chunk

        batches = chunk(list(range(45)), 20)

        assert [len(b) for b in batches] == [20, 20, 5]
        assert batches[2] == [40, 41, 42, 43, 44]

    def test_empty(self):
        from bugscout.core.scheduler import chunk

        assert chunk([], 20) == []

    def test_invalid_batch_size(self):
        from bugscout.core.scheduler import chunk

        with pytest.raises(ValueError):
            chunk([1, 2], 0)


class TestForEachBatch:
    """Tests for for_each_batch()."""

    @pytest.mark.asyncio
    async def test_sequential_batches_sum_counts(self):
        from bugscout.core.scheduler import for_each_batch

        seen = []

        async def fn(batch):
            seen.append(len(batch))
            return len(batch)

        result = await for_each_batch(list(range(45)), 20, fn)

        assert seen == [20, 20, 5]
        assert result.total == 45
        assert result.batches == 3
        assert result.failed_batches == 0

    @pytest.mark.asyncio
    async def test_failed_batch_is_isolated(self):
        from bugscout.core.scheduler import for_each_batch

        calls = []

        async def fn(batch):
            calls.append(batch[0])
            if batch[0] == 20:
                raise RuntimeError("model unavailable")
            return len(batch)

        result = await for_each_batch(list(range(45)), 20, fn)

        assert calls == [0, 20, 40]
        assert result.total == 25
        assert result.failed_batches == 1
        assert result.outcomes[1].error == "model unavailable"
        assert result.outcomes[1].count == 0
        assert result.outcomes[0].success and result.outcomes[2].success

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self):
        from bugscout.core.scheduler import for_each_batch

        async def fn(batch):
            if batch[0] == 0:
                await asyncio.sleep(1)
            return len(batch)

        result = await for_each_batch([0, 1, 2], 1, fn, timeout=0.05)

        assert result.outcomes[0].error == "timeout"
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        from bugscout.core.scheduler import for_each_batch

        in_flight = 0
        peak = 0

        async def fn(batch):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return 1

        result = await for_each_batch(list(range(10)), 1, fn, max_concurrency=3)

        assert peak <= 3
        assert result.total == 10
        assert [o.index for o in result.outcomes] == list(range(10))

    @pytest.mark.asyncio
    async def test_no_items(self):
        from bugscout.core.scheduler import for_each_batch

        async def fn(batch):
            raise AssertionError("should not be called")

        result = await for_each_batch([], 20, fn)

        assert result.batches == 0
        assert result.total == 0
