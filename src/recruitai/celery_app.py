from celery import Celery
from celery.signals import task_prerun, task_postrun
from kombu import Queue
from recruitai.config import settings
import logging

logger = logging.getLogger(__name__)

# One broker queue per priority; workers can be scaled per queue.
AI_QUEUES = ("ai-medium", "ai-low")

celery_app = Celery(
    "recruitai",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["recruitai.workers.ai_processing"],
)

celery_app.conf.update(
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    accept_content=settings.CELERY_ACCEPT_CONTENT,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=settings.TASK_TIME_LIMIT,
    task_soft_time_limit=settings.TASK_SOFT_TIME_LIMIT,
    worker_prefetch_multiplier=settings.WORKER_PREFETCH_MULTIPLIER,
    worker_max_tasks_per_child=1000,
    task_queues=[Queue(name) for name in AI_QUEUES],
    task_default_queue="ai-medium",
)


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, **kwargs):
    logger.info(f"[celery] Starting task: {task.name} (ID: {task_id}, args: {args})")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, state=None, **kwargs):
    logger.info(f"[celery] Completed task: {task.name} (ID: {task_id}, state: {state})")
