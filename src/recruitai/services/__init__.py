"""Services for intake, job processing, AI orchestration and delivery."""

from .cache import BoundedCache, CacheRegistry
from .job_store import JobStore, CancelOutcome
from .job_queue import JobQueue, InMemoryBackend, CeleryBackend
from .worker_pool import WorkerPool
from .processor import JobProcessor
from .orchestrator import AIOrchestrator
from .notifications import NotificationDispatcher
from .intake import IntakeService, Purpose
from .health import HealthService
from .storage import StorageService, LocalStorage, AzureBlobStorage, get_storage

__all__ = [
    "BoundedCache",
    "CacheRegistry",
    "JobStore",
    "CancelOutcome",
    "JobQueue",
    "InMemoryBackend",
    "CeleryBackend",
    "WorkerPool",
    "JobProcessor",
    "AIOrchestrator",
    "NotificationDispatcher",
    "IntakeService",
    "Purpose",
    "HealthService",
    "StorageService",
    "LocalStorage",
    "AzureBlobStorage",
    "get_storage",
]
