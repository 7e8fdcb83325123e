"""Shared utilities for the service."""

from .errors import (
    RecruitAIError,
    InvalidRequest,
    UploadValidationError,
    AuthenticationRequired,
    AccessDenied,
    NotFound,
    InvalidJobState,
    QueueUnavailable,
    ExtractionFailed,
    AIServiceError,
    ProviderUnavailable,
    RateLimited,
    InvalidResponseShape,
)
from .logging import JSONFormatter, setup_logging
from .redis import get_redis_client, close_redis
from .asyncio import run_async
from .buffers import scrub

__all__ = [
    "RecruitAIError",
    "InvalidRequest",
    "UploadValidationError",
    "AuthenticationRequired",
    "AccessDenied",
    "NotFound",
    "InvalidJobState",
    "QueueUnavailable",
    "ExtractionFailed",
    "AIServiceError",
    "ProviderUnavailable",
    "RateLimited",
    "InvalidResponseShape",
    "JSONFormatter",
    "setup_logging",
    "get_redis_client",
    "close_redis",
    "run_async",
    "scrub",
]
