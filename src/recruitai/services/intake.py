"""Upload intake: validate, store, then process now or queue.

Validation happens before any storage, AI or queue work. The upload body
is held in a ``bytearray`` that is zeroed on every exit path.
"""

import asyncio
from dataclasses import dataclass, field
import enum
import logging
from pathlib import Path
import re
from typing import Any, Dict, FrozenSet, Optional
from uuid import uuid4

from fastapi import UploadFile

from recruitai.models import JobPriority, JobType
from recruitai.schemas.common import CamelModel
from recruitai.services.auth import CurrentUser
from recruitai.services.extraction import DOC_MIME, DOCX_MIME, PDF_MIME, TXT_MIME
from recruitai.services.job_queue import JobQueue
from recruitai.services.processor import JobProcessor
from recruitai.services.storage import StorageService
from recruitai.utils.buffers import scrub
from recruitai.utils.errors import UploadValidationError

logger = logging.getLogger(__name__)

MB = 1024 * 1024
READ_CHUNK = MB

DANGEROUS_EXTENSIONS = frozenset({"exe", "bat", "cmd", "scr", "com", "pif", "vbs", "js", "jar"})

CANONICAL_EXTENSIONS = {
    PDF_MIME: "pdf",
    DOC_MIME: "doc",
    DOCX_MIME: "docx",
    TXT_MIME: "txt",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "video/webm": "webm",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
}

_PLAIN_EXTENSION = re.compile(r"[a-z0-9]{1,8}")


class Purpose(str, enum.Enum):
    RESUME = "resume"
    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"


class VideoType(str, enum.Enum):
    INTRO = "intro"
    INTERVIEW = "interview"
    TESTIMONIAL = "testimonial"


PURPOSE_JOB_TYPES = {
    Purpose.RESUME: JobType.RESUME,
    Purpose.DOCUMENT: JobType.EMBEDDING,
    Purpose.VIDEO: JobType.VIDEO_ANALYSIS,
}

RESUME_TYPES = frozenset({PDF_MIME, DOC_MIME, DOCX_MIME})
DOCUMENT_TYPES = RESUME_TYPES | {TXT_MIME}
IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
VIDEO_TYPES = frozenset({"video/webm", "video/mp4", "video/quicktime", "video/x-msvideo"})


@dataclass(frozen=True)
class UploadRule:
    mime_types: FrozenSet[str]
    max_bytes: int
    type_label: str

    @property
    def max_label(self) -> str:
        return f"{self.max_bytes // MB}MB"


@dataclass
class IntakeResult:
    """What the caller gets back: a result now, a queued job, or just a stored file."""

    file_id: Optional[str] = None
    job_id: Optional[str] = None
    job_type: Optional[JobType] = None
    result: Optional[CamelModel] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def queued(self) -> bool:
        return self.job_id is not None


def build_rules(settings) -> Dict[Any, UploadRule]:
    """Allow-lists are fixed; ceilings come from settings."""
    def video(mb):
        return UploadRule(VIDEO_TYPES, mb * MB, "WebM, MP4, MOV, or AVI")

    return {
        Purpose.RESUME: UploadRule(RESUME_TYPES, settings.MAX_RESUME_SIZE_MB * MB, "PDF, DOC, or DOCX"),
        Purpose.DOCUMENT: UploadRule(DOCUMENT_TYPES, settings.MAX_DOCUMENT_SIZE_MB * MB, "PDF, DOC, DOCX, or TXT"),
        Purpose.IMAGE: UploadRule(IMAGE_TYPES, settings.MAX_IMAGE_SIZE_MB * MB, "JPEG, PNG, or WebP"),
        VideoType.INTRO: video(settings.MAX_INTRO_VIDEO_SIZE_MB),
        VideoType.TESTIMONIAL: video(settings.MAX_TESTIMONIAL_VIDEO_SIZE_MB),
        VideoType.INTERVIEW: video(settings.MAX_INTERVIEW_VIDEO_SIZE_MB),
    }


def normalize_mime(content_type: Optional[str]) -> Optional[str]:
    """Drop parameters such as charset: "text/plain; charset=utf-8" -> "text/plain"."""
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower()


def unique_filename(original: Optional[str], mime_type: str) -> str:
    """``<uuid4 hex>.<ext>``; never derived from the client name beyond a plain extension."""
    ext = Path(original or "").suffix.lower().lstrip(".")
    if not _PLAIN_EXTENSION.fullmatch(ext) or ext in DANGEROUS_EXTENSIONS:
        ext = CANONICAL_EXTENSIONS.get(mime_type, "bin")
    return f"{uuid4().hex}.{ext}"


class IntakeService:
    def __init__(self, settings, storage: StorageService, processor: JobProcessor, queue: JobQueue):
        self.storage = storage
        self.processor = processor
        self.queue = queue
        self.rules = build_rules(settings)

    def rule_for(self, purpose: Purpose, video_type: Optional[str] = None) -> UploadRule:
        if purpose != Purpose.VIDEO:
            return self.rules[purpose]
        try:
            return self.rules[VideoType(video_type or VideoType.INTERVIEW.value)]
        except ValueError:
            raise UploadValidationError(
                "Invalid video type. Use intro, interview, or testimonial.",
                constraint="invalid_type",
                field="videoType",
            ) from None

    def validate(self, filename: Optional[str], content_type: Optional[str], size: Optional[int], rule: UploadRule) -> None:
        """Checks that need no body: presence, type, extension and declared size."""
        if not filename:
            raise UploadValidationError("No file provided.", constraint="missing_file")
        if normalize_mime(content_type) not in rule.mime_types:
            raise UploadValidationError(
                f"Invalid file type. Please upload a {rule.type_label} file.",
                constraint="invalid_type",
            )
        if Path(filename).suffix.lower().lstrip(".") in DANGEROUS_EXTENSIONS:
            raise UploadValidationError("File type not allowed.", constraint="invalid_type")
        if size is not None and size > rule.max_bytes:
            raise UploadValidationError(
                f"File size too large. Maximum size is {rule.max_label}.",
                constraint="file_too_large",
            )
        if size == 0:
            raise UploadValidationError("File is empty.", constraint="empty_file")

    async def read_upload(self, upload: UploadFile, rule: UploadRule) -> bytearray:
        """Read the body into a buffer, enforcing the ceiling as bytes arrive."""
        buffer = bytearray()
        while True:
            chunk = await upload.read(READ_CHUNK)
            if not chunk:
                break
            buffer.extend(chunk)
            if len(buffer) > rule.max_bytes:
                scrub(buffer)
                raise UploadValidationError(
                    f"File size too large. Maximum size is {rule.max_label}.",
                    constraint="file_too_large",
                )
        if not buffer:
            raise UploadValidationError("File is empty.", constraint="empty_file")
        return buffer

    async def accept(
        self,
        upload: Optional[UploadFile],
        purpose: Purpose,
        priority: JobPriority,
        user: CurrentUser,
        params: Optional[Dict[str, Any]] = None,
    ) -> IntakeResult:
        params = params or {}
        if upload is None:
            raise UploadValidationError("No file provided.", constraint="missing_file")

        buffer = None
        try:
            rule = self.rule_for(purpose, params.get("videoType"))
            mime_type = normalize_mime(upload.content_type)
            self.validate(upload.filename, mime_type, upload.size, rule)

            buffer = await self.read_upload(upload, rule)
            stored_name = unique_filename(upload.filename, mime_type)
            path = f"{purpose.value}/{user.id}/{stored_name}"
            await asyncio.to_thread(self.storage.save_file, path, buffer)
            logger.info(f"[intake] Accepted {purpose.value} upload {stored_name} ({len(buffer)} bytes)")

            job_type = PURPOSE_JOB_TYPES.get(purpose)
            if job_type is None:
                return IntakeResult(file_id=stored_name, extra={"path": path})

            if priority == JobPriority.HIGH:
                result = await self.processor.execute(
                    job_type, buffer, mime_type, upload.filename, params
                )
                return IntakeResult(file_id=stored_name, job_type=job_type, result=result)

            job_id = await self.queue.submit(
                user_id=user.id,
                company_id=user.company_id,
                type=job_type,
                priority=priority,
                filename=upload.filename,
                mime_type=mime_type,
                file_size=len(buffer),
                storage_path=path,
                payload=params,
            )
            return IntakeResult(file_id=stored_name, job_id=job_id, job_type=job_type)
        finally:
            scrub(buffer)
            await upload.close()

    async def submit_bias_detection(
        self,
        text: str,
        context: Optional[str],
        priority: JobPriority,
        user: CurrentUser,
    ) -> IntakeResult:
        """Text-only intake: same synchronous/queued split as uploads."""
        params = {"text": text, "context": context}
        if priority == JobPriority.HIGH:
            result = await self.processor.execute(JobType.BIAS_DETECTION, None, params=params)
            return IntakeResult(job_type=JobType.BIAS_DETECTION, result=result)

        job_id = await self.queue.submit(
            user_id=user.id,
            company_id=user.company_id,
            type=JobType.BIAS_DETECTION,
            priority=priority,
            payload=params,
        )
        return IntakeResult(job_id=job_id, job_type=JobType.BIAS_DETECTION)


__all__ = [
    "IntakeService",
    "IntakeResult",
    "UploadRule",
    "Purpose",
    "VideoType",
    "PURPOSE_JOB_TYPES",
    "DANGEROUS_EXTENSIONS",
    "build_rules",
    "unique_filename",
    "normalize_mime",
]
