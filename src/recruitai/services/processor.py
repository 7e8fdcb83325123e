"""Runs one job: claim, load payload, call the AI operation, record outcome."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from recruitai.models import JobStatus, JobType
from recruitai.schemas.ai import (
    BiasDetectionInput,
    EmbeddingInput,
    ResumeInput,
    VideoInterviewInput,
)
from recruitai.schemas.common import CamelModel
from recruitai.services.extraction import extract_text
from recruitai.services.job_store import JobStore
from recruitai.services.notifications import NotificationDispatcher
from recruitai.services.orchestrator import AIOrchestrator
from recruitai.services.storage import StorageService
from recruitai.utils.buffers import scrub
from recruitai.utils.errors import RecruitAIError

logger = logging.getLogger(__name__)

JOB_EVENT = "job_update"

# Checkpoints of a running job and the progress reported at each
STAGE_PROGRESS = {
    "loading": 10,
    "extracting": 25,
    "analyzing": 50,
}

Reporter = Callable[[str], Awaitable[Any]]


class JobProcessor:
    def __init__(
        self,
        store: JobStore,
        storage: StorageService,
        orchestrator: AIOrchestrator,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.store = store
        self.storage = storage
        self.orchestrator = orchestrator
        self.notifier = notifier

    async def execute(
        self,
        job_type: JobType,
        content: Optional[bytearray],
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        report: Optional[Reporter] = None,
    ) -> CamelModel:
        """Run the AI operation for ``job_type``. Shared by workers and synchronous intake.

        ``report`` is awaited with the stage name as the operation advances.
        """
        params = params or {}

        async def stage(name):
            if report is not None:
                await report(name)

        if job_type == JobType.RESUME:
            await stage("extracting")
            text = await extract_text(content, mime_type)
            await stage("analyzing")
            return await self.orchestrator.process_resume(
                ResumeInput(text=text, job_description=params.get("jobDescription"))
            )

        if job_type == JobType.EMBEDDING:
            if content:
                await stage("extracting")
                text = await extract_text(content, mime_type)
            else:
                text = params.get("text", "")
            await stage("analyzing")
            return await self.orchestrator.generate_embedding(EmbeddingInput(text=text))

        if job_type == JobType.VIDEO_ANALYSIS:
            await stage("analyzing")
            return await self.orchestrator.analyze_video_interview(
                VideoInterviewInput(
                    audio=content,
                    filename=filename or "interview.webm",
                    video_type=params.get("videoType") or "interview",
                    questions=params.get("questions") or [],
                    job_description=params.get("jobDescription"),
                    candidate_resume=params.get("candidateResume"),
                )
            )

        if job_type == JobType.BIAS_DETECTION:
            await stage("analyzing")
            return await self.orchestrator.detect_bias(
                BiasDetectionInput(text=params.get("text", ""), context=params.get("context"))
            )

        raise ValueError(f"Unknown job type: {job_type}")

    async def process(self, job_id: str) -> Optional[JobStatus]:
        """Process a queued job. Returns its final status, or None if it was not claimable."""
        if not await self.store.claim(job_id):
            logger.info(f"[processor] Skipping job {job_id}: not queued")
            return None

        job = await self.store.get_record(job_id)

        buffer = None
        error = None
        try:
            # a cancel that lands between claim and here is never reported as processing
            await self._advance(job, "loading")
            if job.storage_path:
                buffer = await asyncio.to_thread(self.storage.get_file, job.storage_path)

            if await self.store.is_cancelled(job_id):
                raise _JobCancelled()

            result = await self.execute(
                job.type,
                buffer,
                job.mime_type,
                job.filename,
                job.payload,
                report=lambda stage: self._advance(job, stage),
            )

            if await self.store.complete(job_id, result.to_json()):
                status = JobStatus.COMPLETED
                logger.info(f"[processor] Completed job {job_id}")
            else:
                # cancelled while the provider call was in flight
                logger.info(f"[processor] Discarded result of cancelled job {job_id}")
                return JobStatus.CANCELLED
        except _JobCancelled:
            logger.info(f"[processor] Job {job_id} cancelled before provider call")
            return JobStatus.CANCELLED
        except asyncio.CancelledError:
            await self.store.fail(job_id, "Worker shut down during processing")
            raise
        except Exception as e:
            if isinstance(e, RecruitAIError):
                error = e.public_message
                logger.error(f"[processor] Job {job_id} failed: {type(e).__name__}: {e}")
            else:
                error = f"Unexpected error ({type(e).__name__})"
                logger.error(f"[processor] Job {job_id} failed: {e}", exc_info=True)
            if not await self.store.fail(job_id, error):
                return JobStatus.CANCELLED
            status = JobStatus.FAILED
        finally:
            scrub(buffer)

        await self._notify(job, status, error=error, stage=status.value)
        return status

    async def _advance(self, job, stage: str) -> None:
        """Record and push a checkpoint; raises ``_JobCancelled`` once the job left processing."""
        progress = STAGE_PROGRESS[stage]
        if not await self.store.update_progress(job.id, progress, stage):
            raise _JobCancelled()
        await self._notify(job, JobStatus.PROCESSING, progress=progress, stage=stage)

    async def _notify(self, job, status, error=None, progress=None, stage=None) -> None:
        if self.notifier is None:
            return
        data = {"jobId": job.id, "type": job.type.value, "status": status.value}
        if status == JobStatus.COMPLETED:
            progress = 100
        if progress is not None:
            data["progress"] = progress
        if stage:
            data["stage"] = stage
        if error:
            data["error"] = error
        await self.notifier.send_to_user(job.user_id, JOB_EVENT, data)


class _JobCancelled(Exception):
    """The job was cancelled while this worker held it."""


__all__ = ["JobProcessor", "JOB_EVENT", "STAGE_PROGRESS"]
