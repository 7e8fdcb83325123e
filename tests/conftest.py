"""Pytest configuration and fixtures"""

import copy
import io
import json
import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

# Set test environment variables BEFORE any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JOB_QUEUE_BACKEND"] = "memory"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="recruitai-test-")
os.environ.pop("REDIS_URL", None)
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("AZURE_STORAGE_CONNECTION_STRING", None)

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas
from starlette.datastructures import Headers, UploadFile

from recruitai.config import Settings
from recruitai.database import create_engine, create_session_factory, init_db
from recruitai.services.job_store import JobStore
from recruitai.services.orchestrator import AIOrchestrator
from recruitai.services.storage import LocalStorage


def _pdf_bytes(text: str, padding: int = 0) -> bytes:
    """Single-page PDF with one line of text; ``padding`` inflates the document info."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    c.drawString(72, 720, text)
    if padding:
        c.setSubject("0" * padding)
    c.save()
    return buffer.getvalue()


def _chat_response(payload) -> MagicMock:
    """Stand-in for a chat completion whose message content is ``payload``."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


RESUME_PAYLOAD = {
    "summary": "Backend engineer with a focus on Python services.",
    "skills": ["Python", "FastAPI", "PostgreSQL"],
    "experienceYears": 6,
    "education": ["BSc Computer Science"],
    "strengths": ["API design"],
}

BIAS_PAYLOAD = {
    "biasDetected": True,
    "fairnessScore": 0.6,
    "flags": [
        {
            "category": "age_bias",
            "severity": "medium",
            "confidence": 0.8,
            "description": "'digital native' implies a younger candidate",
        }
    ],
    "recommendations": ["Describe the skills needed instead of generational traits"],
}

VIDEO_PAYLOAD = {
    "behavioralAnalysis": "Calm and structured answers.",
    "transcriptHighlights": ["I led the migration to async workers"],
    "competencyScores": [
        {"name": "Communication", "score": 4, "feedback": "Clear"},
        {"name": "Problem solving", "score": 3.5, "feedback": "Good examples"},
    ],
    "keyStrengths": ["Ownership"],
    "areasForDevelopment": ["Stakeholder management"],
    "overallRecommendation": "Recommended",
    "justification": "Strong technical depth.",
}


@pytest.fixture
def payloads():
    """Well-formed provider answers, copied so tests can mutate them."""
    return {
        "resume": copy.deepcopy(RESUME_PAYLOAD),
        "bias": copy.deepcopy(BIAS_PAYLOAD),
        "video": copy.deepcopy(VIDEO_PAYLOAD),
    }


@pytest.fixture
def make_pdf():
    return _pdf_bytes


@pytest.fixture
def chat_response():
    return _chat_response


@pytest.fixture
def make_upload():
    """Build a Starlette UploadFile the way the multipart parser would."""

    def _make(content: bytes, filename: str, content_type: str, size=None):
        return UploadFile(
            file=io.BytesIO(content),
            size=len(content) if size is None else size,
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    return _make


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        OPENAI_API_KEY=None,
        REDIS_URL=None,
        JOB_QUEUE_BACKEND="memory",
        WORKER_CONCURRENCY=2,
    )


@pytest.fixture
async def engine():
    """In-memory SQLite job store, one per test."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return JobStore(create_session_factory(engine))


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "storage"))


@pytest.fixture
def mock_openai():
    """AsyncOpenAI stand-in; tests set return values on the calls they use."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_chat_response(RESUME_PAYLOAD))
    client.embeddings.create = AsyncMock()
    client.audio.transcriptions.create = AsyncMock(
        return_value=MagicMock(text="I led the migration to async workers.")
    )
    client.models.retrieve = AsyncMock(return_value=MagicMock(id="gpt-4o-mini"))
    return client


@pytest.fixture
def orchestrator(test_settings, mock_openai):
    return AIOrchestrator(test_settings, client=mock_openai)
