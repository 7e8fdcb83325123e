from .base import Base, utcnow
from .job import (
    ProcessingJob,
    JobType,
    JobPriority,
    JobStatus,
    TERMINAL_STATUSES,
)

__all__ = [
    "Base",
    "utcnow",
    "ProcessingJob",
    "JobType",
    "JobPriority",
    "JobStatus",
    "TERMINAL_STATUSES",
]
