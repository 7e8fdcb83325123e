"""Persistent job records and their state machine.

Every transition is a single conditional UPDATE guarded by the allowed
predecessor statuses, so concurrent writers cannot move a job backwards
and only one worker can claim a queued job.
"""

from datetime import datetime
import enum
import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recruitai.models import JobPriority, JobStatus, JobType, ProcessingJob, utcnow
from recruitai.schemas.jobs import JobSnapshot

logger = logging.getLogger(__name__)


class CancelOutcome(str, enum.Enum):
    CANCELLED = "cancelled"
    ALREADY_TERMINAL = "already_terminal"
    NOT_FOUND = "not_found"


class JobStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(
        self,
        *,
        user_id: str,
        type: JobType,
        priority: JobPriority,
        company_id: Optional[str] = None,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None,
        file_size: Optional[int] = None,
        storage_path: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> JobSnapshot:
        job = ProcessingJob(
            id=uuid4().hex,
            user_id=user_id,
            company_id=company_id,
            type=type,
            priority=priority,
            status=JobStatus.QUEUED,
            progress=0,
            filename=filename,
            mime_type=mime_type,
            file_size=file_size,
            storage_path=storage_path,
            payload=payload or {},
            created_at=utcnow(),
        )
        async with self.session_factory() as session:
            session.add(job)
            await session.commit()
            await session.refresh(job)
        logger.info(f"[jobs] Created {type.value} job {job.id} ({priority.value})")
        return JobSnapshot.model_validate(job)

    async def get_record(self, job_id: str) -> Optional[ProcessingJob]:
        """Full row, including payload and storage path (worker use)."""
        async with self.session_factory() as session:
            return await session.get(ProcessingJob, job_id)

    async def get(self, job_id: str) -> Optional[JobSnapshot]:
        job = await self.get_record(job_id)
        return JobSnapshot.model_validate(job) if job is not None else None

    async def _transition(
        self,
        job_id: str,
        allowed_from: Iterable[JobStatus],
        to: JobStatus,
        **values,
    ) -> bool:
        stmt = (
            update(ProcessingJob)
            .where(ProcessingJob.id == job_id)
            .where(ProcessingJob.status.in_(list(allowed_from)))
            .values(status=to, **values)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        changed = result.rowcount == 1
        if changed:
            logger.info(f"[jobs] {job_id} -> {to.value}")
        return changed

    async def claim(self, job_id: str) -> bool:
        """queued -> processing. False if another worker claimed it or it was cancelled."""
        return await self._transition(
            job_id, [JobStatus.QUEUED], JobStatus.PROCESSING, started_at=utcnow()
        )

    async def complete(self, job_id: str, result: Dict[str, Any]) -> bool:
        """processing -> completed. False if the job was cancelled mid-flight."""
        return await self._transition(
            job_id,
            [JobStatus.PROCESSING],
            JobStatus.COMPLETED,
            result=result,
            progress=100,
            stage="completed",
            finished_at=utcnow(),
        )

    async def update_progress(self, job_id: str, progress: int, stage: str) -> bool:
        """Record progress of a running job. False once it is no longer processing."""
        stmt = (
            update(ProcessingJob)
            .where(ProcessingJob.id == job_id)
            .where(ProcessingJob.status == JobStatus.PROCESSING)
            .values(progress=max(0, min(100, progress)), stage=stage)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount == 1

    async def fail(self, job_id: str, error_message: str) -> bool:
        return await self._transition(
            job_id,
            [JobStatus.QUEUED, JobStatus.PROCESSING],
            JobStatus.FAILED,
            error_message=error_message[:2000],
            finished_at=utcnow(),
        )

    async def cancel(self, job_id: str) -> CancelOutcome:
        if await self._transition(
            job_id,
            [JobStatus.QUEUED, JobStatus.PROCESSING],
            JobStatus.CANCELLED,
            finished_at=utcnow(),
        ):
            return CancelOutcome.CANCELLED
        if await self.get_record(job_id) is None:
            return CancelOutcome.NOT_FOUND
        return CancelOutcome.ALREADY_TERMINAL

    async def is_cancelled(self, job_id: str) -> bool:
        async with self.session_factory() as session:
            status = await session.scalar(
                select(ProcessingJob.status).where(ProcessingJob.id == job_id)
            )
        return status == JobStatus.CANCELLED

    async def queued_jobs(self) -> List[JobSnapshot]:
        """Jobs still waiting for a worker, oldest first."""
        stmt = (
            select(ProcessingJob)
            .where(ProcessingJob.status == JobStatus.QUEUED)
            .order_by(ProcessingJob.created_at)
        )
        async with self.session_factory() as session:
            jobs = (await session.scalars(stmt)).all()
        return [JobSnapshot.model_validate(job) for job in jobs]

    async def stale_processing(self, started_before: datetime) -> List[JobSnapshot]:
        """Jobs marked processing since before ``started_before``."""
        stmt = (
            select(ProcessingJob)
            .where(ProcessingJob.status == JobStatus.PROCESSING)
            .where(ProcessingJob.started_at < started_before)
        )
        async with self.session_factory() as session:
            jobs = (await session.scalars(stmt)).all()
        return [JobSnapshot.model_validate(job) for job in jobs]

    async def counts(self) -> Dict[str, int]:
        """Number of jobs per status (all statuses present, zero when none)."""
        stmt = select(ProcessingJob.status, func.count()).group_by(ProcessingJob.status)
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
        counts = {status.value: 0 for status in JobStatus}
        for status, count in rows:
            counts[JobStatus(status).value] = count
        return counts


__all__ = ["JobStore", "CancelOutcome"]
