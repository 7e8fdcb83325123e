from sqlalchemy import Column, String, Text, Integer, DateTime, Enum, JSON, Index
from recruitai.models.base import Base, utcnow
import enum


class JobType(str, enum.Enum):
    RESUME = "resume"
    VIDEO_ANALYSIS = "video-analysis"
    EMBEDDING = "embedding"
    BIAS_DETECTION = "bias-detection"


class JobPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class JobStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ProcessingJob(Base):
    """One unit of asynchronous AI work.

    Status only moves forward; see JobStore for the allowed transitions.
    """

    __tablename__ = "processing_jobs"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    company_id = Column(String, nullable=True)
    type = Column(Enum(JobType, values_callable=_enum_values, native_enum=False), nullable=False)
    priority = Column(Enum(JobPriority, values_callable=_enum_values, native_enum=False), nullable=False)
    status = Column(
        Enum(JobStatus, values_callable=_enum_values, native_enum=False),
        default=JobStatus.QUEUED,
        nullable=False,
    )
    progress = Column(Integer, default=0, nullable=False)
    stage = Column(String(32), nullable=True)

    # Uploaded payload, kept in storage
    filename = Column(String, nullable=True)
    mime_type = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    storage_path = Column(String, nullable=True)

    # Operation parameters (job description, bias text, ...)
    payload = Column(JSON, nullable=False, default=dict)

    result = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_processing_jobs_status", "status"),)
