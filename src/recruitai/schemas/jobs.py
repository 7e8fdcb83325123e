from datetime import datetime
from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional

from recruitai.models import JobPriority, JobStatus, JobType
from recruitai.schemas.common import CamelModel


class JobSnapshot(CamelModel):
    """Immutable view of a job, as returned by status polling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    id: str
    user_id: str
    company_id: Optional[str] = None
    type: JobType
    priority: JobPriority
    status: JobStatus
    progress: int = 0
    stage: Optional[str] = None
    filename: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class JobAccepted(CamelModel):
    job_id: str
    status: JobStatus = JobStatus.QUEUED
    type: JobType
    priority: JobPriority


class CancelResponse(CamelModel):
    processing_id: str
    message: str = "Processing cancelled"


class QueueStats(CamelModel):
    backend: str
    counts: Dict[str, int]
    waiting: Optional[int] = None
    active: Optional[int] = None
    concurrency: Optional[int] = None


class BiasDetectionRequest(CamelModel):
    text: str = Field(min_length=1, max_length=50_000)
    context: Optional[str] = None
    priority: JobPriority = JobPriority.MEDIUM


class NotificationRequest(CamelModel):
    type: Literal["user", "company", "role", "broadcast"]
    target: Optional[str] = None
    event: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationSent(CamelModel):
    sent: bool
    # delivered, published (Redis: recipients unknown) or dropped
    delivery: str
    type: str
    target: Optional[str] = None
    event: str
    timestamp: datetime


class HealthCheck(CamelModel):
    service: str
    status: Literal["healthy", "degraded", "unhealthy"]
    response_time_ms: float
    details: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class HealthReport(CamelModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: datetime
    checks: List[HealthCheck]
