"""Job queue façade: submit, poll, cancel.

The backend only moves job ids; job state lives in the ``JobStore``.
"""

from datetime import timedelta
import logging
from typing import Any, Dict, Optional

from recruitai.models import JobPriority, JobStatus, utcnow
from recruitai.schemas.jobs import JobSnapshot
from recruitai.services.cache import BoundedCache
from recruitai.services.job_store import CancelOutcome, JobStore
from recruitai.services.notifications import NotificationDispatcher
from recruitai.services.processor import JOB_EVENT
from recruitai.services.worker_pool import PRIORITY_RANK, WorkerPool
from recruitai.utils.errors import QueueUnavailable

logger = logging.getLogger(__name__)

PROCESS_JOB_TASK = "recruitai.process_job"

WORKER_LOST_MESSAGE = "Worker lost during processing"


class QueueBackend:
    name = "abstract"

    def dispatch(self, job_id: str, priority: JobPriority) -> None:
        raise NotImplementedError

    def stats(self) -> Dict[str, Any]:
        return {}

    @property
    def running(self) -> bool:
        return True


class InMemoryBackend(QueueBackend):
    """Jobs run on the API process's own worker pool."""

    name = "memory"

    def __init__(self, pool: WorkerPool):
        self.pool = pool

    def dispatch(self, job_id: str, priority: JobPriority) -> None:
        self.pool.submit(job_id, priority)

    def stats(self) -> Dict[str, Any]:
        return self.pool.stats()

    @property
    def running(self) -> bool:
        return self.pool.running


class CeleryBackend(QueueBackend):
    """Jobs are sent by name to Celery workers, one broker queue per priority."""

    name = "celery"

    def __init__(self, celery_app):
        self.celery_app = celery_app

    @staticmethod
    def pick_queue(priority: JobPriority) -> str:
        # high priority is normally served synchronously; if queued it rides with medium
        return "ai-low" if priority == JobPriority.LOW else "ai-medium"

    def dispatch(self, job_id: str, priority: JobPriority) -> None:
        self.celery_app.send_task(
            PROCESS_JOB_TASK,
            args=[job_id],
            queue=self.pick_queue(priority),
        )


class JobQueue:
    def __init__(
        self,
        store: JobStore,
        backend: QueueBackend,
        cache: Optional[BoundedCache] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.store = store
        self.backend = backend
        self.cache = cache
        self.notifier = notifier

    async def submit(self, **fields) -> str:
        """Persist a new job as queued and hand it to the backend.

        ``fields`` are the JobStore.create arguments.

        Raises:
            QueueUnavailable: the backend refused the job; it is marked failed.
        """
        job = await self.store.create(**fields)
        # queued goes out before dispatch so no worker event can precede it
        await self._notify(job, JobStatus.QUEUED)
        try:
            self.backend.dispatch(job.id, job.priority)
        except Exception as e:
            logger.error(f"[queue] Dispatch failed for job {job.id}: {e}", exc_info=True)
            error = QueueUnavailable.public_message
            if await self.store.fail(job.id, error):
                await self._notify(job, JobStatus.FAILED, error)
            raise QueueUnavailable() from e

        logger.info(f"[queue] Queued {job.type.value} job {job.id} on {self.backend.name}")
        return job.id

    async def status(self, job_id: str) -> Optional[JobSnapshot]:
        """Current snapshot. Terminal snapshots never change, so they are cached."""
        if self.cache is not None:
            cached = self.cache.get(job_id)
            if cached is not None:
                return cached

        snapshot = await self.store.get(job_id)
        if snapshot is not None and snapshot.status.is_terminal and self.cache is not None:
            self.cache.set(job_id, snapshot)
        return snapshot

    async def cancel(self, job_id: str) -> CancelOutcome:
        """Cancel a queued or processing job. Terminal jobs are left untouched.

        A running job notices the cancellation at its next checkpoint or
        when it tries to record its result.
        """
        outcome = await self.store.cancel(job_id)
        if outcome == CancelOutcome.CANCELLED:
            logger.info(f"[queue] Cancelled job {job_id}")
            snapshot = await self.store.get(job_id)
            if snapshot is not None:
                await self._notify(snapshot, JobStatus.CANCELLED)
        return outcome

    async def stats(self) -> Dict[str, Any]:
        return {
            "backend": self.backend.name,
            "counts": await self.store.counts(),
            **self.backend.stats(),
        }

    async def recover(self, stale_after: float) -> Dict[str, int]:
        """Pick up jobs left behind by a previous process.

        Jobs processing for longer than ``stale_after`` seconds lost their
        worker and are failed. Queued jobs are dispatched again, by priority
        then age; a duplicate delivery is harmless since only one claim can
        succeed. A dispatch failure leaves the job queued for the next start.
        """
        failed = 0
        cutoff = utcnow() - timedelta(seconds=stale_after)
        for job in await self.store.stale_processing(cutoff):
            if await self.store.fail(job.id, WORKER_LOST_MESSAGE):
                failed += 1
                logger.warning(f"[queue] Job {job.id} lost its worker, marked failed")
                await self._notify(job, JobStatus.FAILED, WORKER_LOST_MESSAGE)

        requeued = 0
        queued = await self.store.queued_jobs()
        queued.sort(key=lambda job: (PRIORITY_RANK[job.priority], job.created_at))
        for job in queued:
            try:
                self.backend.dispatch(job.id, job.priority)
            except Exception as e:
                logger.error(f"[queue] Could not re-dispatch job {job.id}: {e}")
                continue
            requeued += 1

        if failed or requeued:
            logger.info(f"[queue] Recovered jobs: {requeued} re-queued, {failed} failed")
        return {"requeued": requeued, "failed": failed}

    async def _notify(self, job: JobSnapshot, status: JobStatus, error: Optional[str] = None) -> None:
        if self.notifier is None:
            return
        data = {"jobId": job.id, "type": job.type.value, "status": status.value}
        if error:
            data["error"] = error
        await self.notifier.send_to_user(job.user_id, JOB_EVENT, data)



__all__ = [
    "JobQueue",
    "QueueBackend",
    "InMemoryBackend",
    "CeleryBackend",
    "PROCESS_JOB_TASK",
    "WORKER_LOST_MESSAGE",
]
