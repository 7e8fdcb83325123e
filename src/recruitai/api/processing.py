from fastapi import APIRouter, Depends, Query
import logging

from recruitai.api.deps import get_current_user, get_services, require_roles
from recruitai.container import Services
from recruitai.schemas import CancelResponse, QueueStats, envelope
from recruitai.services.auth import CurrentUser, Role, can_access_job
from recruitai.services.job_store import CancelOutcome
from recruitai.utils.errors import AccessDenied, InvalidJobState, NotFound

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/processing", tags=["processing"])


async def _get_owned_job(services: Services, job_id: str, user: CurrentUser):
    job = await services.queue.status(job_id)
    if job is None:
        raise NotFound("Processing job")
    if not can_access_job(user, job.user_id, job.company_id):
        logger.warning(f"[processing] User {user.id} denied access to job {job_id}")
        raise AccessDenied()
    return job


@router.get("/status")
async def get_status(
    job_id: str = Query(..., alias="jobId"),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Poll a job's status; the result is included once completed."""
    job = await _get_owned_job(services, job_id, user)
    return envelope(job)


@router.post("/{job_id}/cancel")
async def cancel_processing(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Cancel a queued or running job. Finished jobs are left as they are."""
    job = await _get_owned_job(services, job_id, user)

    outcome = await services.queue.cancel(job_id)
    if outcome == CancelOutcome.NOT_FOUND:
        raise NotFound("Processing job")
    if outcome == CancelOutcome.ALREADY_TERMINAL:
        current = await services.queue.status(job_id)
        current_status = (current or job).status.value
        raise InvalidJobState(f"Processing already {current_status}", current_status)

    return envelope(CancelResponse(processing_id=job_id))


@router.get("/stats")
async def get_stats(
    user: CurrentUser = Depends(require_roles(Role.SUPER_ADMIN)),
    services: Services = Depends(get_services),
):
    """Queue statistics across all companies: job counts per status plus backend state."""
    stats = await services.queue.stats()
    return envelope(QueueStats(**stats))
