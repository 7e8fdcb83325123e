"""Process-wide service graph.

Built once per process (API or Celery worker) and passed by reference.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from recruitai.database import create_engine, create_session_factory, init_db
from recruitai.services.cache import BoundedCache, CacheRegistry
from recruitai.services.health import HealthService
from recruitai.services.intake import IntakeService
from recruitai.services.job_queue import CeleryBackend, InMemoryBackend, JobQueue, QueueBackend
from recruitai.services.job_store import JobStore
from recruitai.services.notifications import NotificationDispatcher
from recruitai.services.orchestrator import AIOrchestrator
from recruitai.services.processor import JobProcessor
from recruitai.services.storage import StorageService, get_storage
from recruitai.services.worker_pool import WorkerPool
from recruitai.utils.redis import close_redis, get_redis_client

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: object
    engine: AsyncEngine
    store: JobStore
    storage: StorageService
    orchestrator: AIOrchestrator
    caches: CacheRegistry
    notifier: NotificationDispatcher
    processor: JobProcessor
    queue: JobQueue
    intake: IntakeService
    health: HealthService
    pool: Optional[WorkerPool] = None
    redis_client: Optional[object] = None

    @property
    def job_cache(self) -> BoundedCache:
        return self.caches.get("jobs")

    async def startup(self, relay: bool = True, recover: bool = True) -> None:
        await init_db(self.engine)
        if self.pool is not None:
            await self.pool.start()
        if recover:
            await self.queue.recover(self.settings.TASK_TIME_LIMIT)
        if relay:
            await self.notifier.start_relay()
        logger.info(f"[services] Started (queue backend: {self.queue.backend.name})")

    async def shutdown(self) -> None:
        await self.notifier.stop_relay()
        if self.pool is not None:
            await self.pool.stop()
        if self.redis_client is not None:
            await close_redis()
        await self.engine.dispose()
        logger.info("[services] Stopped")


def build_services(
    settings,
    *,
    engine: Optional[AsyncEngine] = None,
    orchestrator: Optional[AIOrchestrator] = None,
    storage: Optional[StorageService] = None,
    backend: Optional[str] = None,
) -> Services:
    """Wire the service graph from settings; collaborators can be swapped for tests."""
    engine = engine or create_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    store = JobStore(create_session_factory(engine))
    storage = storage or get_storage(settings)
    orchestrator = orchestrator or AIOrchestrator(settings)

    caches = CacheRegistry()
    job_cache = caches.create(
        "jobs",
        max_size=settings.JOB_CACHE_MAX_SIZE,
        ttl_seconds=settings.JOB_CACHE_TTL_SECONDS,
    )

    redis_client = get_redis_client(settings.REDIS_URL) if settings.REDIS_URL else None
    notifier = NotificationDispatcher(redis_client)
    processor = JobProcessor(store, storage, orchestrator, notifier)

    backend = backend or settings.JOB_QUEUE_BACKEND
    pool = None
    if backend == "memory":
        pool = WorkerPool(processor.process, concurrency=settings.WORKER_CONCURRENCY)
        queue_backend: QueueBackend = InMemoryBackend(pool)
    elif backend == "celery":
        from recruitai.celery_app import celery_app
        queue_backend = CeleryBackend(celery_app)
    else:
        raise ValueError(f"Unknown JOB_QUEUE_BACKEND: {backend}")

    queue = JobQueue(store, queue_backend, cache=job_cache, notifier=notifier)
    intake = IntakeService(settings, storage, processor, queue)
    health = HealthService(settings, engine, orchestrator, caches, queue, redis_client, notifier)

    return Services(
        settings=settings,
        engine=engine,
        store=store,
        storage=storage,
        orchestrator=orchestrator,
        caches=caches,
        notifier=notifier,
        processor=processor,
        queue=queue,
        intake=intake,
        health=health,
        pool=pool,
        redis_client=redis_client,
    )


__all__ = ["Services", "build_services"]
