"""Tests for the job queue façade and its backends."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import update

from recruitai.models import JobPriority, JobStatus, JobType, ProcessingJob, utcnow
from recruitai.services.cache import BoundedCache
from recruitai.services.job_queue import (
    CeleryBackend,
    JobQueue,
    PROCESS_JOB_TASK,
    QueueBackend,
    WORKER_LOST_MESSAGE,
)
from recruitai.services.job_store import CancelOutcome
from recruitai.utils.errors import QueueUnavailable


class RecordingBackend(QueueBackend):
    name = "recording"

    def __init__(self):
        self.dispatched = []

    def dispatch(self, job_id, priority):
        self.dispatched.append((job_id, priority))


class BrokenBackend(QueueBackend):
    name = "broken"

    def dispatch(self, job_id, priority):
        raise ConnectionError("broker down")


def _fields(**overrides):
    fields = dict(user_id="user-1", type=JobType.RESUME, priority=JobPriority.LOW)
    fields.update(overrides)
    return fields


@pytest.mark.asyncio
async def test_submit_persists_and_dispatches(store):
    backend = RecordingBackend()
    notifier = MagicMock()
    notifier.send_to_user = AsyncMock(return_value=True)
    queue = JobQueue(store, backend, notifier=notifier)

    job_id = await queue.submit(**_fields())

    assert backend.dispatched == [(job_id, JobPriority.LOW)]
    assert (await queue.status(job_id)).status == JobStatus.QUEUED
    notifier.send_to_user.assert_awaited_once()
    assert notifier.send_to_user.call_args[0][2]["status"] == "queued"


@pytest.mark.asyncio
async def test_dispatch_failure_marks_job_failed(store):
    queue = JobQueue(store, BrokenBackend())

    with pytest.raises(QueueUnavailable):
        await queue.submit(**_fields())

    counts = await store.counts()
    assert counts["failed"] == 1
    assert counts["queued"] == 0


@pytest.mark.asyncio
async def test_dispatch_failure_notifies_owner(store):
    notifier = MagicMock()
    notifier.send_to_user = AsyncMock()
    queue = JobQueue(store, BrokenBackend(), notifier=notifier)

    with pytest.raises(QueueUnavailable):
        await queue.submit(**_fields())

    events = [call.args[2] for call in notifier.send_to_user.await_args_list]
    assert [e["status"] for e in events] == ["queued", "failed"]
    assert events[1]["error"] == "Processing queue unavailable"


@pytest.mark.asyncio
async def test_status_caches_terminal_snapshots_only(store):
    cache = BoundedCache("jobs", max_size=10)
    queue = JobQueue(store, RecordingBackend(), cache=cache)
    job_id = await queue.submit(**_fields())

    await queue.status(job_id)
    assert cache.get(job_id) is None

    await store.claim(job_id)
    await store.complete(job_id, {"ok": True})
    snapshot = await queue.status(job_id)

    assert snapshot.status == JobStatus.COMPLETED
    assert cache.get(job_id) == snapshot


@pytest.mark.asyncio
async def test_status_unknown_job(store):
    queue = JobQueue(store, RecordingBackend())
    assert await queue.status("missing") is None


@pytest.mark.asyncio
async def test_cancel_notifies_owner(store):
    notifier = MagicMock()
    notifier.send_to_user = AsyncMock(return_value=True)
    queue = JobQueue(store, RecordingBackend(), notifier=notifier)
    job_id = await queue.submit(**_fields())
    notifier.send_to_user.reset_mock()

    assert await queue.cancel(job_id) == CancelOutcome.CANCELLED

    user_id, event, data = notifier.send_to_user.call_args[0]
    assert user_id == "user-1"
    assert event == "job_update"
    assert data["status"] == "cancelled"


@pytest.mark.asyncio
async def test_stats_combine_counts_and_backend(store):
    queue = JobQueue(store, RecordingBackend())
    await queue.submit(**_fields())

    stats = await queue.stats()

    assert stats["backend"] == "recording"
    assert stats["counts"]["queued"] == 1


def test_celery_backend_routes_by_priority():
    celery_app = MagicMock()
    backend = CeleryBackend(celery_app)

    backend.dispatch("job-1", JobPriority.LOW)
    backend.dispatch("job-2", JobPriority.MEDIUM)

    first, second = celery_app.send_task.call_args_list
    assert first.args == (PROCESS_JOB_TASK,)
    assert first.kwargs == {"args": ["job-1"], "queue": "ai-low"}
    assert second.kwargs["queue"] == "ai-medium"


async def _started_at(store, job_id, when):
    async with store.session_factory() as session:
        await session.execute(update(ProcessingJob).where(ProcessingJob.id == job_id).values(started_at=when))
        await session.commit()


@pytest.mark.asyncio
async def test_recover_redispatches_queued_jobs_by_priority_then_age(store):
    oldest_low = await store.create(**_fields(priority=JobPriority.LOW))
    medium = await store.create(**_fields(priority=JobPriority.MEDIUM))
    newer_low = await store.create(**_fields(priority=JobPriority.LOW))
    high = await store.create(**_fields(priority=JobPriority.HIGH))
    backend = RecordingBackend()
    queue = JobQueue(store, backend)

    outcome = await queue.recover(stale_after=600)

    assert outcome == {"requeued": 4, "failed": 0}
    assert [job_id for job_id, _ in backend.dispatched] == [high.id, medium.id, oldest_low.id, newer_low.id]
    assert (await store.counts())["queued"] == 4


@pytest.mark.asyncio
async def test_recover_fails_jobs_whose_worker_was_lost(store):
    stale = await store.create(**_fields())
    fresh = await store.create(**_fields())
    await store.claim(stale.id)
    await store.claim(fresh.id)
    await _started_at(store, stale.id, utcnow() - timedelta(hours=1))
    notifier = MagicMock()
    notifier.send_to_user = AsyncMock()
    backend = RecordingBackend()
    queue = JobQueue(store, backend, notifier=notifier)

    outcome = await queue.recover(stale_after=600)

    assert outcome == {"requeued": 0, "failed": 1}
    lost = await store.get(stale.id)
    assert lost.status == JobStatus.FAILED
    assert lost.error_message == WORKER_LOST_MESSAGE
    assert (await store.get(fresh.id)).status == JobStatus.PROCESSING
    assert backend.dispatched == []
    user_id, event, data = notifier.send_to_user.call_args[0]
    assert (event, data["jobId"], data["status"]) == ("job_update", stale.id, "failed")


@pytest.mark.asyncio
async def test_recover_leaves_job_queued_when_dispatch_fails(store):
    job = await store.create(**_fields())
    queue = JobQueue(store, BrokenBackend())

    outcome = await queue.recover(stale_after=600)

    assert outcome == {"requeued": 0, "failed": 0}
    assert (await store.get(job.id)).status == JobStatus.QUEUED
