"""Service health: per-dependency checks aggregated into one status."""

import asyncio
from datetime import datetime, timezone
import logging
import time
from typing import Awaitable, Callable, Dict, List, Tuple

from recruitai.database import ping_db
from recruitai.schemas.jobs import HealthCheck, HealthReport

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

CHECK_TIMEOUT = 5.0
CACHE_NEAR_CAPACITY = 0.9

# (status, details) returned by a check; raising means the check failed
Check = Callable[[], Awaitable[Tuple[str, Dict]]]


def aggregate(checks: List[HealthCheck], critical: set) -> str:
    """Unhealthy if a critical check is unhealthy, degraded if anything is not healthy."""
    if any(c.status == UNHEALTHY and c.service in critical for c in checks):
        return UNHEALTHY
    if any(c.status != HEALTHY for c in checks):
        return DEGRADED
    return HEALTHY


class HealthService:
    def __init__(self, settings, engine, orchestrator, caches, queue, redis_client=None, notifier=None):
        self.settings = settings
        self.engine = engine
        self.orchestrator = orchestrator
        self.caches = caches
        self.queue = queue
        self.redis_client = redis_client
        self.notifier = notifier

    async def _run(self, service: str, check: Check, failure_status: str) -> HealthCheck:
        started = time.perf_counter()
        try:
            status, details = await asyncio.wait_for(check(), CHECK_TIMEOUT)
            error = None
        except Exception as e:
            logger.warning(f"[health] {service} check failed: {type(e).__name__}: {e}")
            status, details = failure_status, {}
            error = str(e) or type(e).__name__
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        return HealthCheck(
            service=service,
            status=status,
            response_time_ms=elapsed_ms,
            details=details,
            error=error,
        )

    async def _database(self):
        await ping_db(self.engine)
        return HEALTHY, {}

    async def _ai_provider(self):
        if not self.orchestrator.configured:
            return DEGRADED, {"configured": False}
        await self.orchestrator.ping()
        return HEALTHY, {"configured": True, "model": self.settings.OPENAI_CHAT_MODEL}

    async def _cache(self):
        stats = self.caches.stats()
        full = [name for name, cache in self.caches.items() if cache.utilization() >= CACHE_NEAR_CAPACITY]
        return (DEGRADED if full else HEALTHY), {"caches": stats, "nearCapacity": full}

    async def _job_system(self):
        stats = await self.queue.stats()
        queued = stats["counts"].get("queued", 0)
        details = {**stats, "backlogWarn": self.settings.JOB_BACKLOG_WARN}
        if not self.queue.backend.running or queued > self.settings.JOB_BACKLOG_WARN:
            return DEGRADED, details
        return HEALTHY, details

    async def _redis(self):
        await self.redis_client.ping()
        relay = self.notifier.relay_state if self.notifier is not None else "off"
        if relay == "off":
            return HEALTHY, {}
        return (HEALTHY if relay == "running" else DEGRADED), {"relay": relay}

    async def check(self) -> HealthReport:
        planned: List[Tuple[str, Check, str]] = [
            ("database", self._database, UNHEALTHY),
            ("ai-provider", self._ai_provider, DEGRADED),
            ("cache", self._cache, DEGRADED),
            ("job-system", self._job_system, DEGRADED),
        ]
        if self.redis_client is not None:
            planned.append(("redis", self._redis, DEGRADED))

        results = await asyncio.gather(*(self._run(name, check, failure) for name, check, failure in planned))
        checks = list(results)
        status = aggregate(checks, critical={"database"})
        if status != HEALTHY:
            logger.warning(f"[health] Service {status}: " + ", ".join(
                f"{c.service}={c.status}" for c in checks if c.status != HEALTHY
            ))
        return HealthReport(status=status, timestamp=datetime.now(timezone.utc), checks=checks)


__all__ = ["HealthService", "aggregate", "HEALTHY", "DEGRADED", "UNHEALTHY"]
