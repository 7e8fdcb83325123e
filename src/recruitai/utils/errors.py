"""Error definitions shared by the API, the queue and the workers.

Every error carries the HTTP status it maps to and a message that is safe
to show to the client. Provider details stay in the server log.
"""

from typing import Any, Dict, List, Optional


class RecruitAIError(Exception):
    """Base exception for the service."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        if message is not None:
            self.public_message = message


class InvalidRequest(RecruitAIError):
    """Client input failed validation; ``constraint`` names the rule."""

    status_code = 400

    def __init__(self, message: str, constraint: str, field: str = "file"):
        super().__init__(message)
        self.constraint = constraint
        self.field = field

    @property
    def details(self) -> List[Dict[str, Any]]:
        return [{"field": self.field, "constraint": self.constraint, "message": self.public_message}]


class UploadValidationError(InvalidRequest):
    """Upload rejected before any storage or AI work.

    ``constraint`` is one of missing_file, invalid_type, file_too_large,
    empty_file.
    """


class AuthenticationRequired(RecruitAIError):
    status_code = 401
    public_message = "Authentication required"


class AccessDenied(RecruitAIError):
    status_code = 403
    public_message = "Access denied"


class NotFound(RecruitAIError):
    status_code = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class InvalidJobState(RecruitAIError):
    """Requested transition is not valid from the job's current status."""

    status_code = 400

    def __init__(self, message: str, current_status: str):
        super().__init__(message)
        self.current_status = current_status

    @property
    def details(self) -> List[Dict[str, Any]]:
        return [{"field": "status", "constraint": "already_terminal", "status": self.current_status}]


class QueueUnavailable(RecruitAIError):
    """Job could not be handed to the queue backend."""

    status_code = 503
    public_message = "Processing queue unavailable"


class ExtractionFailed(RecruitAIError):
    """Text could not be extracted from an uploaded document."""

    status_code = 422
    public_message = "Could not read text from the uploaded document"


class AIServiceError(RecruitAIError):
    """Base for failures of the external AI provider."""

    status_code = 502
    public_message = "AI service error"


class ProviderUnavailable(AIServiceError):
    """Provider unreachable, misconfigured or failing."""

    public_message = "AI service unavailable"


class RateLimited(AIServiceError):
    status_code = 429
    public_message = "AI service rate limit exceeded, try again later"


class InvalidResponseShape(AIServiceError):
    """Provider answered, but not with the expected structure."""

    public_message = "AI service returned an invalid response"


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
]
