from fastapi import APIRouter, Depends, HTTPException, Response, status
import logging

from recruitai.api.deps import get_current_user, get_services
from recruitai.container import Services
from recruitai.schemas import BiasDetectionRequest, JobAccepted, envelope
from recruitai.services.auth import CurrentUser
from recruitai.utils.errors import RecruitAIError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/bias-detection")
async def detect_bias(
    body: BiasDetectionRequest,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Check recruiting text (job posts, feedback) for biased language."""
    try:
        outcome = await services.intake.submit_bias_detection(body.text, body.context, body.priority, user)
    except (RecruitAIError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"[ai] Bias detection error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run bias detection",
        )

    if outcome.queued:
        response.status_code = status.HTTP_202_ACCEPTED
        accepted = JobAccepted(job_id=outcome.job_id, type=outcome.job_type, priority=body.priority)
        return envelope(accepted, message="Bias detection queued")
    return envelope({"result": outcome.result.to_json()}, message="Bias detection complete")
