"""AI orchestrator: one typed entry point per AI operation.

Each operation builds its prompt, calls the provider, validates the
response against a schema and clamps numeric scores into range. Provider
failures surface as ``RateLimited``, ``ProviderUnavailable`` or
``InvalidResponseShape``; nothing is cached or retried here.
"""

import json
import logging
import math
from typing import List, Optional, Type, TypeVar

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AsyncOpenAI,
    RateLimitError,
)
from pydantic import BaseModel, Field, ValidationError

from recruitai.schemas.ai import (
    BiasDetectionInput,
    BiasFlag,
    BiasReport,
    CompetencyScore,
    EmbeddingInput,
    EmbeddingResult,
    ResumeAnalysis,
    ResumeInput,
    VideoInterviewAnalysis,
    VideoInterviewInput,
)
from recruitai.schemas.common import CamelModel
from recruitai.utils.errors import (
    AIServiceError,
    InvalidResponseShape,
    ProviderUnavailable,
    RateLimited,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

MAX_PROMPT_CHARS = 24000

RECOMMENDATIONS = (
    "Strongly Recommended",
    "Recommended",
    "Recommended with Reservations",
    "Not Recommended",
)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp into [low, high]; NaN maps to ``low``."""
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


# ===== RAW PROVIDER SHAPES =====
# Accept what the model returns (camelCase or snake_case), before clamping.
class _RawResume(CamelModel):
    summary: str
    skills: List[str]
    experience_years: float
    education: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    match_score: Optional[float] = None


class _RawBiasFlag(CamelModel):
    category: str
    severity: str
    confidence: float
    description: str


class _RawBias(CamelModel):
    bias_detected: bool
    fairness_score: float
    flags: List[_RawBiasFlag]
    recommendations: List[str] = Field(default_factory=list)


class _RawCompetency(CamelModel):
    name: str
    score: float
    feedback: str = ""


class _RawVideo(CamelModel):
    behavioral_analysis: str
    transcript_highlights: List[str] = Field(default_factory=list)
    competency_scores: List[_RawCompetency]
    key_strengths: List[str] = Field(default_factory=list)
    areas_for_development: List[str] = Field(default_factory=list)
    overall_recommendation: str
    justification: str


# ===== PROMPTS =====
RESUME_PROMPT = """You are an expert technical recruiter. Analyze the resume below.
Return a JSON object with keys:
  "summary": string, 2-3 sentences,
  "skills": array of strings,
  "experienceYears": number of years of professional experience,
  "education": array of strings,
  "strengths": array of strings{match_clause}
"""

BIAS_PROMPT = """You review recruiting text for bias. Categories: gender, age, racial,
education, location, name, experience, language.
Return a JSON object with keys:
  "biasDetected": boolean,
  "fairnessScore": number between 0 (biased) and 1 (fair),
  "flags": array of {{"category", "severity" (low|medium|high|critical),
            "confidence" (0-1), "description"}},
  "recommendations": array of strings
"""

VIDEO_PROMPT = """You are an experienced interviewer assessing a recorded {video_type} video.
You receive the audio transcript and, if available, the questions asked, the job
description and the candidate's resume.
Return a JSON object with keys:
  "behavioralAnalysis": string,
  "transcriptHighlights": array of short quotes,
  "competencyScores": array of {{"name", "score" (1-5), "feedback"}},
  "keyStrengths": array of strings,
  "areasForDevelopment": array of strings,
  "overallRecommendation": one of {recommendations},
  "justification": string
"""


class AIOrchestrator:
    """Façade over the AI provider used by intake and workers."""

    def __init__(self, settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT,
                max_retries=settings.OPENAI_MAX_RETRIES,
            )
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise ProviderUnavailable(
                "AI service unavailable: OPENAI_API_KEY not configured"
            )
        return self.client

    def _translate(self, operation: str, exc: Exception) -> AIServiceError:
        """Map an SDK exception to the service's error types."""
        if isinstance(exc, RateLimitError):
            logger.warning(f"[ai] {operation}: provider rate limit: {exc}")
            return RateLimited()
        if isinstance(exc, APIConnectionError):
            logger.error(f"[ai] {operation}: provider unreachable: {exc}")
            return ProviderUnavailable()
        if isinstance(exc, APIStatusError):
            logger.error(f"[ai] {operation}: provider returned HTTP {exc.status_code}: {exc}")
            return ProviderUnavailable()
        logger.error(f"[ai] {operation}: provider error {type(exc).__name__}: {exc}", exc_info=True)
        return ProviderUnavailable()

    async def _complete_json(self, operation: str, system: str, user: str, schema: Type[T]) -> T:
        client = self._require_client()
        try:
            response = await client.chat.completions.create(
                model=self.settings.OPENAI_CHAT_MODEL,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                response_format={"type": "json_object"},
                temperature=0.2,
            )
        except APIError as e:
            raise self._translate(operation, e) from e

        if not response.choices or not response.choices[0].message.content:
            logger.error(f"[ai] {operation}: empty completion")
            raise InvalidResponseShape()

        content = response.choices[0].message.content
        try:
            return schema.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"[ai] {operation}: response does not match schema: {e}")
            raise InvalidResponseShape() from e

    # ===== OPERATIONS =====
    async def process_resume(self, data: ResumeInput) -> ResumeAnalysis:
        """Summarize a resume and pull out skills, experience and education."""
        match_clause = ""
        user = f"RESUME:\n{data.text[:MAX_PROMPT_CHARS]}"
        if data.job_description:
            match_clause = ',\n  "matchScore": number between 0 and 1 for fit to the job description'
            user += f"\n\nJOB DESCRIPTION:\n{data.job_description[:MAX_PROMPT_CHARS // 4]}"

        raw = await self._complete_json(
            "process_resume",
            RESUME_PROMPT.format(match_clause=match_clause),
            user,
            _RawResume,
        )
        return ResumeAnalysis(
            extracted_text=data.text,
            summary=raw.summary,
            skills=raw.skills,
            experience_years=clamp(raw.experience_years, 0, 80),
            education=raw.education,
            strengths=raw.strengths,
            match_score=clamp(raw.match_score, 0, 1) if raw.match_score is not None else None,
        )

    async def generate_embedding(self, data: EmbeddingInput) -> EmbeddingResult:
        """Embed a single text with the configured embedding model."""
        text = data.text.strip()
        if not text:
            raise ValueError("Empty text cannot be embedded")
        if len(text) > self.settings.EMBEDDING_MAX_CHARS:
            logger.warning(
                f"[ai] Text exceeds {self.settings.EMBEDDING_MAX_CHARS} chars ({len(text)}), truncating"
            )
            text = text[: self.settings.EMBEDDING_MAX_CHARS]

        client = self._require_client()
        model = self.settings.OPENAI_EMBEDDING_MODEL
        try:
            logger.debug("[ai] Calling embeddings API", extra={"model": model, "chars": len(text)})
            response = await client.embeddings.create(model=model, input=[text])
        except APIError as e:
            raise self._translate("generate_embedding", e) from e

        if len(response.data) != 1 or not response.data[0].embedding:
            logger.error(f"[ai] generate_embedding: expected 1 embedding, got {len(response.data)}")
            raise InvalidResponseShape()

        vector = [float(v) for v in response.data[0].embedding]
        return EmbeddingResult(
            model=getattr(response, "model", None) or model,
            dimensions=len(vector),
            vector=vector,
            text_length=len(text),
        )

    async def detect_bias(self, data: BiasDetectionInput) -> BiasReport:
        """Flag biased language in recruiting text."""
        user = f"TEXT:\n{data.text[:MAX_PROMPT_CHARS]}"
        if data.context:
            user += f"\n\nCONTEXT: {data.context}"

        raw = await self._complete_json("detect_bias", BIAS_PROMPT, user, _RawBias)
        try:
            flags = [
                BiasFlag(
                    category=flag.category,
                    severity=flag.severity.strip().lower(),
                    confidence=clamp(flag.confidence, 0, 1),
                    description=flag.description,
                )
                for flag in raw.flags
            ]
        except ValidationError as e:
            logger.error(f"[ai] detect_bias: invalid flag in response: {e}")
            raise InvalidResponseShape() from e

        return BiasReport(
            bias_detected=raw.bias_detected or bool(flags),
            fairness_score=clamp(raw.fairness_score, 0, 1),
            flags=flags,
            recommendations=raw.recommendations,
        )

    async def transcribe(self, audio: bytes, filename: str) -> str:
        client = self._require_client()
        try:
            transcription = await client.audio.transcriptions.create(
                model=self.settings.OPENAI_TRANSCRIPTION_MODEL,
                file=(filename, bytes(audio)),
            )
        except APIError as e:
            raise self._translate("transcribe", e) from e

        text = getattr(transcription, "text", None)
        if not isinstance(text, str):
            raise InvalidResponseShape()
        return text.strip()

    async def analyze_video_interview(self, data: VideoInterviewInput) -> VideoInterviewAnalysis:
        """Transcribe the recording, then assess it against the role."""
        transcript = await self.transcribe(data.audio, data.filename)
        if not transcript:
            logger.error("[ai] analyze_video_interview: transcription returned no speech")
            raise InvalidResponseShape("No speech could be transcribed from the video")

        parts = [f"TRANSCRIPT:\n{transcript[:MAX_PROMPT_CHARS]}"]
        if data.questions:
            parts.append("QUESTIONS:\n" + "\n".join(f"- {q}" for q in data.questions))
        if data.job_description:
            parts.append(f"JOB DESCRIPTION:\n{data.job_description[:MAX_PROMPT_CHARS // 4]}")
        if data.candidate_resume:
            parts.append(f"CANDIDATE RESUME:\n{data.candidate_resume[:MAX_PROMPT_CHARS // 4]}")

        system = VIDEO_PROMPT.format(
            video_type=data.video_type,
            recommendations=", ".join(f'"{r}"' for r in RECOMMENDATIONS),
        )
        raw = await self._complete_json("analyze_video_interview", system, "\n\n".join(parts), _RawVideo)

        recommendation = next(
            (r for r in RECOMMENDATIONS if r.lower() == raw.overall_recommendation.strip().lower()),
            None,
        )
        if recommendation is None:
            logger.error(f"[ai] analyze_video_interview: unknown recommendation {raw.overall_recommendation!r}")
            raise InvalidResponseShape()

        return VideoInterviewAnalysis(
            transcript=transcript,
            behavioral_analysis=raw.behavioral_analysis,
            transcript_highlights=raw.transcript_highlights,
            competency_scores=[
                CompetencyScore(name=c.name, score=clamp(c.score, 1, 5), feedback=c.feedback)
                for c in raw.competency_scores
            ],
            key_strengths=raw.key_strengths,
            areas_for_development=raw.areas_for_development,
            overall_recommendation=recommendation,
            justification=raw.justification,
        )

    async def ping(self) -> None:
        """Reachability check used by the health endpoint."""
        client = self._require_client()
        try:
            await client.models.retrieve(self.settings.OPENAI_CHAT_MODEL)
        except APIError as e:
            raise self._translate("ping", e) from e


__all__ = ["AIOrchestrator", "clamp", "RECOMMENDATIONS"]
