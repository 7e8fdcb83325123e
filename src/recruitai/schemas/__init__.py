from .common import CamelModel, envelope
from .ai import (
    BiasCategory,
    Severity,
    ResumeInput,
    EmbeddingInput,
    BiasDetectionInput,
    VideoInterviewInput,
    ResumeAnalysis,
    EmbeddingResult,
    BiasFlag,
    BiasReport,
    CompetencyScore,
    VideoInterviewAnalysis,
)
from .jobs import (
    JobSnapshot,
    JobAccepted,
    CancelResponse,
    QueueStats,
    BiasDetectionRequest,
    NotificationRequest,
    NotificationSent,
    HealthCheck,
    HealthReport,
)

__all__ = [
    "CamelModel",
    "envelope",
    "BiasCategory",
    "Severity",
    "ResumeInput",
    "EmbeddingInput",
    "BiasDetectionInput",
    "VideoInterviewInput",
    "ResumeAnalysis",
    "EmbeddingResult",
    "BiasFlag",
    "BiasReport",
    "CompetencyScore",
    "VideoInterviewAnalysis",
    "JobSnapshot",
    "JobAccepted",
    "CancelResponse",
    "QueueStats",
    "BiasDetectionRequest",
    "NotificationRequest",
    "NotificationSent",
    "HealthCheck",
    "HealthReport",
]
