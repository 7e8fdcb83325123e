"""Celery task that runs one AI processing job."""

import logging
from typing import Optional

from celery import Task

from recruitai.celery_app import celery_app
from recruitai.config import settings
from recruitai.container import Services, build_services
from recruitai.utils.asyncio import run_async
from recruitai.utils.logging import setup_logging

logger = logging.getLogger(__name__)

_services: Optional[Services] = None


async def get_worker_services() -> Services:
    """Service graph for this worker process, started on first use."""
    global _services
    if _services is None:
        setup_logging(settings.LOG_LEVEL)
        services = build_services(settings, backend="celery")
        await services.startup(relay=False, recover=False)
        _services = services
    return _services


class CallbackTask(Task):
    """Task with error handling callback."""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"[celery] Task {task_id} failed: {exc}", exc_info=einfo)


@celery_app.task(
    base=CallbackTask,
    bind=True,
    max_retries=0,
    name="recruitai.process_job",
)
def process_job(self, job_id: str) -> dict:
    """Process a queued job. Failures are recorded on the job; the task is not retried."""

    async def run():
        services = await get_worker_services()
        status = await services.processor.process(job_id)
        return {
            "job_id": job_id,
            "status": status.value if status is not None else "skipped",
        }

    return run_async(run())
