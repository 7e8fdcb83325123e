from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from typing import List, Optional
import json
import logging

from recruitai.api.deps import get_current_user, get_services
from recruitai.container import Services
from recruitai.models import JobPriority
from recruitai.schemas import JobAccepted, envelope
from recruitai.services.auth import CurrentUser
from recruitai.services.intake import Purpose
from recruitai.utils.errors import RecruitAIError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["uploads"])


def parse_questions(raw: Optional[str]) -> List[str]:
    """Questions arrive as a JSON array or one per line."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = raw.splitlines()
    if isinstance(parsed, str):
        parsed = [parsed]
    if not isinstance(parsed, list):
        return []
    return [str(q).strip() for q in parsed if str(q).strip()]


@router.post("/upload/{purpose}")
async def upload_file(
    purpose: Purpose,
    response: Response,
    file: Optional[UploadFile] = File(None),
    priority: JobPriority = Form(JobPriority.MEDIUM),
    video_type: Optional[str] = Form(None, alias="videoType"),
    candidate_id: Optional[str] = Form(None, alias="candidateId"),
    job_description: Optional[str] = Form(None, alias="jobDescription"),
    candidate_resume: Optional[str] = Form(None, alias="candidateResume"),
    questions: Optional[str] = Form(None),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Upload a file for a purpose (resume, document, image, video).

    High priority runs the AI operation within the request; medium and low
    queue a job and return its id.
    """
    params = {
        "videoType": video_type,
        "candidateId": candidate_id,
        "jobDescription": job_description,
        "candidateResume": candidate_resume,
        "questions": parse_questions(questions),
    }
    params = {k: v for k, v in params.items() if v}

    try:
        outcome = await services.intake.accept(file, purpose, priority, user, params)
    except (RecruitAIError, HTTPException):
        raise
    except Exception as e:
        logger.error(f"[uploads] Upload error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process upload",
        )

    if outcome.queued:
        response.status_code = status.HTTP_202_ACCEPTED
        accepted = JobAccepted(job_id=outcome.job_id, type=outcome.job_type, priority=priority)
        return envelope(
            {**accepted.to_json(), "fileId": outcome.file_id},
            message="File uploaded, processing queued",
        )

    if outcome.result is not None:
        return envelope(
            {"fileId": outcome.file_id, "type": outcome.job_type.value, "result": outcome.result.to_json()},
            message="File processed",
        )

    response.status_code = status.HTTP_201_CREATED
    return envelope({"fileId": outcome.file_id}, message="File uploaded")
