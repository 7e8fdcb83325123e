from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
import logging

from recruitai.api.deps import get_services
from recruitai.container import Services
from recruitai.services.health import UNHEALTHY

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health(services: Services = Depends(get_services)):
    """Aggregate dependency health. 503 only when unhealthy."""
    report = await services.health.check()
    code = status.HTTP_503_SERVICE_UNAVAILABLE if report.status == UNHEALTHY else status.HTTP_200_OK
    return JSONResponse(
        status_code=code,
        content=report.to_json(),
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
