"""Tests for upload intake: validation order, storage, and the sync/queued split."""

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.datastructures import Headers, UploadFile

from recruitai.models import JobPriority, JobType
from recruitai.schemas.ai import ResumeAnalysis
from recruitai.services.auth import CurrentUser, Role
from recruitai.services.intake import (
    MB,
    IntakeService,
    Purpose,
    normalize_mime,
    unique_filename,
)
from recruitai.utils.errors import UploadValidationError

PDF = "application/pdf"
USER = CurrentUser(id="user-1", role=Role.CANDIDATE, company_id="co-1")


@pytest.fixture
def collaborators():
    storage = MagicMock()
    processor = MagicMock()
    processor.execute = AsyncMock(
        return_value=ResumeAnalysis(extracted_text="cv", summary="s", skills=["Python"], experience_years=2)
    )
    queue = MagicMock()
    queue.submit = AsyncMock(return_value="job-123")
    return storage, processor, queue


@pytest.fixture
def intake(test_settings, collaborators):
    storage, processor, queue = collaborators
    return IntakeService(test_settings, storage, processor, queue)


def _rejection(exc_info):
    return exc_info.value.constraint, exc_info.value.public_message


@pytest.mark.asyncio
async def test_oversized_interview_video_rejected_before_any_work(intake, collaborators, make_upload):
    """A declared 600MB interview video fails the 500MB ceiling without being read."""
    storage, processor, queue = collaborators
    upload = make_upload(b"\x00" * 16, "interview.mp4", "video/mp4", size=600 * MB)
    upload.read = AsyncMock()

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.VIDEO, JobPriority.MEDIUM, USER, {"videoType": "interview"})

    assert _rejection(exc_info) == ("file_too_large", "File size too large. Maximum size is 500MB.")
    upload.read.assert_not_called()
    storage.save_file.assert_not_called()
    processor.execute.assert_not_called()
    queue.submit.assert_not_called()


@pytest.mark.asyncio
async def test_video_ceiling_depends_on_video_type(intake, make_upload):
    upload = make_upload(b"\x00" * 16, "intro.webm", "video/webm", size=60 * MB)

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.VIDEO, JobPriority.LOW, USER, {"videoType": "intro"})

    assert exc_info.value.public_message == "File size too large. Maximum size is 50MB."


@pytest.mark.asyncio
async def test_unknown_video_type(intake, make_upload):
    upload = make_upload(b"\x00" * 16, "a.mp4", "video/mp4")

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.VIDEO, JobPriority.LOW, USER, {"videoType": "blooper"})

    assert exc_info.value.field == "videoType"


@pytest.mark.asyncio
async def test_missing_file(intake):
    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(None, Purpose.RESUME, JobPriority.MEDIUM, USER)

    assert exc_info.value.constraint == "missing_file"


@pytest.mark.asyncio
async def test_invalid_type_checked_before_size(intake, make_upload):
    upload = make_upload(b"PNG", "photo.png", "image/png", size=50 * MB)

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.RESUME, JobPriority.MEDIUM, USER)

    assert _rejection(exc_info) == ("invalid_type", "Invalid file type. Please upload a PDF, DOC, or DOCX file.")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "purpose, upload_args, params",
    [
        (Purpose.RESUME, (b"PNG", "photo.png", "image/png"), None),
        (Purpose.VIDEO, (b"\x00" * 16, "a.mp4", "video/mp4"), {"videoType": "blooper"}),
    ],
)
async def test_rejected_upload_is_closed(intake, make_upload, purpose, upload_args, params):
    upload = make_upload(*upload_args)

    with pytest.raises(UploadValidationError):
        await intake.accept(upload, purpose, JobPriority.MEDIUM, USER, params)

    assert upload.file.closed


@pytest.mark.asyncio
async def test_dangerous_extension_rejected(intake, make_upload):
    upload = make_upload(b"MZ", "resume.pdf.exe", PDF)

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.RESUME, JobPriority.MEDIUM, USER)

    assert _rejection(exc_info) == ("invalid_type", "File type not allowed.")


@pytest.mark.asyncio
async def test_empty_file_rejected(intake, make_upload):
    upload = make_upload(b"", "resume.pdf", PDF)

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.RESUME, JobPriority.MEDIUM, USER)

    assert exc_info.value.constraint == "empty_file"


@pytest.mark.asyncio
async def test_ceiling_enforced_while_streaming(intake, collaborators):
    """An upload without a declared size is cut off once it passes the ceiling."""
    storage, _, _ = collaborators
    upload = UploadFile(
        file=io.BytesIO(b"%" * (6 * MB)),
        size=None,
        filename="resume.pdf",
        headers=Headers({"content-type": PDF}),
    )

    with pytest.raises(UploadValidationError) as exc_info:
        await intake.accept(upload, Purpose.RESUME, JobPriority.MEDIUM, USER)

    assert exc_info.value.constraint == "file_too_large"
    storage.save_file.assert_not_called()


@pytest.mark.asyncio
async def test_high_priority_runs_synchronously(intake, collaborators, make_upload):
    storage, processor, queue = collaborators
    upload = make_upload(b"%PDF-1.4 resume", "Jane Doe CV.pdf", "application/pdf; charset=binary")

    outcome = await intake.accept(upload, Purpose.RESUME, JobPriority.HIGH, USER, {"jobDescription": "Python"})

    assert outcome.queued is False
    assert outcome.job_type == JobType.RESUME
    assert outcome.result.skills == ["Python"]
    assert outcome.file_id.endswith(".pdf")
    queue.submit.assert_not_called()

    path, _ = storage.save_file.call_args.args
    assert path == f"resume/user-1/{outcome.file_id}"
    job_type, _, mime_type, filename, params = processor.execute.call_args.args
    assert (job_type, mime_type, filename) == (JobType.RESUME, PDF, "Jane Doe CV.pdf")
    assert params == {"jobDescription": "Python"}


@pytest.mark.asyncio
async def test_buffer_is_scrubbed_after_processing(intake, collaborators, make_upload):
    _, processor, _ = collaborators
    upload = make_upload(b"%PDF-1.4 sensitive", "cv.pdf", PDF)

    await intake.accept(upload, Purpose.RESUME, JobPriority.HIGH, USER)

    buffer = processor.execute.call_args.args[1]
    assert isinstance(buffer, bytearray)
    assert len(buffer) == len(b"%PDF-1.4 sensitive")
    assert not any(buffer)


@pytest.mark.asyncio
async def test_buffer_is_scrubbed_when_processing_fails(intake, collaborators, make_upload):
    _, processor, _ = collaborators
    processor.execute.side_effect = RuntimeError("boom")
    upload = make_upload(b"%PDF-1.4 sensitive", "cv.pdf", PDF)

    with pytest.raises(RuntimeError):
        await intake.accept(upload, Purpose.RESUME, JobPriority.HIGH, USER)

    assert not any(processor.execute.call_args.args[1])


@pytest.mark.asyncio
async def test_low_priority_is_queued(intake, collaborators, make_upload):
    _, processor, queue = collaborators
    upload = make_upload(b"%PDF-1.4 resume", "cv.pdf", PDF)

    outcome = await intake.accept(upload, Purpose.RESUME, JobPriority.LOW, USER)

    assert outcome.queued is True
    assert outcome.job_id == "job-123"
    processor.execute.assert_not_called()
    fields = queue.submit.call_args.kwargs
    assert fields["type"] == JobType.RESUME
    assert fields["priority"] == JobPriority.LOW
    assert fields["company_id"] == "co-1"
    assert fields["storage_path"] == f"resume/user-1/{outcome.file_id}"
    assert fields["file_size"] == len(b"%PDF-1.4 resume")


@pytest.mark.asyncio
async def test_document_upload_queues_embedding(intake, collaborators, make_upload):
    _, _, queue = collaborators
    upload = make_upload(b"plain notes", "notes.txt", "text/plain")

    outcome = await intake.accept(upload, Purpose.DOCUMENT, JobPriority.MEDIUM, USER)

    assert outcome.job_type == JobType.EMBEDDING
    assert queue.submit.call_args.kwargs["type"] == JobType.EMBEDDING


@pytest.mark.asyncio
async def test_image_is_stored_without_processing(intake, collaborators, make_upload):
    storage, processor, queue = collaborators
    upload = make_upload(b"\x89PNG", "avatar.png", "image/png")

    outcome = await intake.accept(upload, Purpose.IMAGE, JobPriority.HIGH, USER)

    assert outcome.file_id.endswith(".png")
    assert outcome.result is None and outcome.job_id is None
    storage.save_file.assert_called_once()
    processor.execute.assert_not_called()
    queue.submit.assert_not_called()


@pytest.mark.asyncio
async def test_bias_detection_queued_and_sync(intake, collaborators):
    _, processor, queue = collaborators

    queued = await intake.submit_bias_detection("Young team", None, JobPriority.MEDIUM, USER)
    assert queued.job_id == "job-123"
    assert queue.submit.call_args.kwargs["payload"] == {"text": "Young team", "context": None}

    await intake.submit_bias_detection("Young team", "job ad", JobPriority.HIGH, USER)
    assert processor.execute.call_args.kwargs["params"] == {"text": "Young team", "context": "job ad"}


def test_unique_filename_ignores_client_name():
    first = unique_filename("../../etc/passwd.pdf", PDF)
    second = unique_filename("../../etc/passwd.pdf", PDF)

    assert first != second
    assert first.endswith(".pdf")
    assert "/" not in first and "passwd" not in first
    assert len(first.split(".")[0]) == 32


def test_unique_filename_falls_back_to_mime_extension():
    assert unique_filename("resume", PDF).endswith(".pdf")
    assert unique_filename("clip.exe", "video/mp4").endswith(".mp4")
    assert unique_filename(None, "application/x-unknown").endswith(".bin")


def test_normalize_mime():
    assert normalize_mime("Text/Plain; charset=utf-8") == "text/plain"
    assert normalize_mime(None) is None
    assert normalize_mime("") is None
