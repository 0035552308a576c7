"""Unit tests for the worker pool."""

import asyncio
import threading
import time

import pytest

from hlsmux.core.worker_pool import WorkerPool


class TestWorkerPool:
    """Test WorkerPool.map."""

    @pytest.mark.asyncio
    async def test_results_follow_item_order(self):
        pool = WorkerPool(worker_count=3)

        def work(item):
            time.sleep(item)
            return item

        results = await pool.map(work, [0.05, 0.0, 0.02])

        assert results == [0.05, 0.0, 0.02]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        pool = WorkerPool(worker_count=2)
        lock = threading.Lock()
        running = 0
        peak = 0

        def work(item):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.02)
            with lock:
                running -= 1
            return item

        await pool.map(work, range(6))

        assert peak <= 2
        assert pool.active_count == 0

    @pytest.mark.asyncio
    async def test_limit_is_shared_across_concurrent_maps(self):
        pool = WorkerPool(worker_count=1)
        lock = threading.Lock()
        running = 0
        peak = 0

        def work(item):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.02)
            with lock:
                running -= 1
            return item

        first, second = await asyncio.gather(
            pool.map(work, [1, 2, 3]),
            pool.map(work, [4, 5, 6]),
        )

        assert first == [1, 2, 3]
        assert second == [4, 5, 6]
        assert peak == 1

    @pytest.mark.asyncio
    async def test_exceptions_are_returned_in_place(self):
        pool = WorkerPool(worker_count=1)

        def work(item):
            if item == 1:
                raise RuntimeError("boom")
            return item

        results = await pool.map(work, [0, 1, 2], stop_on_error=False)

        assert results[0] == 0
        assert isinstance(results[1], RuntimeError)
        assert results[2] == 2

    @pytest.mark.asyncio
    async def test_stop_on_error_skips_queued_items(self):
        pool = WorkerPool(worker_count=1)
        started = []

        def work(item):
            started.append(item)
            if item == 0:
                raise RuntimeError("boom")
            return item

        results = await pool.map(work, [0, 1, 2])

        assert started == [0]
        assert isinstance(results[0], RuntimeError)
        assert results[1:] == [None, None]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await WorkerPool().map(lambda item: item, []) == []

    def test_requires_a_worker(self):
        with pytest.raises(ValueError):
            WorkerPool(worker_count=0)
