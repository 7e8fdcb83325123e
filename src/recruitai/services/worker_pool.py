"""In-process worker pool for queued jobs.

A fixed number of runner tasks pull job ids from a priority queue. Jobs
are ordered by priority (medium before low), then by submission order.
"""

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from recruitai.models import JobPriority

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    JobPriority.HIGH: 0,
    JobPriority.MEDIUM: 1,
    JobPriority.LOW: 2,
}

_STOP = object()


class WorkerPool:
    def __init__(self, handler: Callable[[str], Awaitable[Any]], concurrency: int = 4):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.handler = handler
        self.concurrency = concurrency
        self._queue: Optional[asyncio.PriorityQueue] = None
        self._sequence = itertools.count()
        self._runners: List[asyncio.Task] = []
        self._active: Set[str] = set()

    @property
    def running(self) -> bool:
        return bool(self._runners) and not all(r.done() for r in self._runners)

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.PriorityQueue()
        self._runners = [
            asyncio.create_task(self._run(i), name=f"job-runner-{i}")
            for i in range(self.concurrency)
        ]
        logger.info(f"[pool] Started {self.concurrency} job runners")

    async def stop(self, timeout: float = 10.0) -> None:
        """Let runners finish their current job, then cancel what remains."""
        if not self._runners:
            return
        # Sorts after every real job, so queued work drains first.
        for _ in self._runners:
            self._queue.put_nowait((len(PRIORITY_RANK), next(self._sequence), _STOP))
        done, pending = await asyncio.wait(self._runners, timeout=timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._runners = []
        logger.info(f"[pool] Stopped job runners ({len(pending)} cancelled)")

    def submit(self, job_id: str, priority: JobPriority) -> None:
        if self._queue is None:
            raise RuntimeError("Worker pool is not started")
        self._queue.put_nowait((PRIORITY_RANK[priority], next(self._sequence), job_id))
        logger.debug(f"[pool] Submitted {job_id} ({priority.value})")

    async def join(self) -> None:
        """Wait until every submitted job has been handled."""
        await self._queue.join()

    async def _run(self, index: int) -> None:
        while True:
            _, _, job_id = await self._queue.get()
            try:
                if job_id is _STOP:
                    return
                self._active.add(job_id)
                await self.handler(job_id)
            except Exception as e:
                logger.error(f"[pool] Runner {index} failed on {job_id}: {e}", exc_info=True)
            finally:
                self._active.discard(job_id)
                self._queue.task_done()

    def stats(self) -> Dict[str, Any]:
        return {
            "waiting": self._queue.qsize() if self._queue else 0,
            "active": len(self._active),
            "concurrency": self.concurrency,
        }


__all__ = ["WorkerPool", "PRIORITY_RANK"]
