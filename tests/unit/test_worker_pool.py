"""Tests for the in-process worker pool."""

import asyncio

import pytest

from recruitai.models import JobPriority
from recruitai.services.worker_pool import WorkerPool


@pytest.mark.asyncio
async def test_medium_runs_before_low_and_fifo_within_priority():
    handled = []

    async def handler(job_id):
        handled.append(job_id)

    pool = WorkerPool(handler, concurrency=1)
    await pool.start()
    # queued before the single runner gets a turn
    pool.submit("low-1", JobPriority.LOW)
    pool.submit("medium-1", JobPriority.MEDIUM)
    pool.submit("low-2", JobPriority.LOW)
    pool.submit("medium-2", JobPriority.MEDIUM)

    await pool.join()
    await pool.stop()

    assert handled == ["medium-1", "medium-2", "low-1", "low-2"]


@pytest.mark.asyncio
async def test_runs_jobs_concurrently_up_to_limit():
    running = 0
    peak = 0
    release = asyncio.Event()

    async def handler(job_id):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await release.wait()
        running -= 1

    pool = WorkerPool(handler, concurrency=3)
    await pool.start()
    for i in range(5):
        pool.submit(f"job-{i}", JobPriority.LOW)

    for _ in range(20):
        await asyncio.sleep(0)
    assert pool.stats()["active"] == 3

    release.set()
    await pool.join()
    await pool.stop()

    assert peak == 3


@pytest.mark.asyncio
async def test_handler_error_does_not_kill_runner():
    handled = []

    async def handler(job_id):
        if job_id == "bad":
            raise RuntimeError("boom")
        handled.append(job_id)

    pool = WorkerPool(handler, concurrency=1)
    await pool.start()
    pool.submit("bad", JobPriority.MEDIUM)
    pool.submit("good", JobPriority.MEDIUM)
    await pool.join()

    assert handled == ["good"]
    assert pool.running
    await pool.stop()
    assert not pool.running


@pytest.mark.asyncio
async def test_submit_before_start_fails():
    pool = WorkerPool(lambda job_id: None, concurrency=1)
    with pytest.raises(RuntimeError, match="not started"):
        pool.submit("x", JobPriority.LOW)
