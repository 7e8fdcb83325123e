"""Inputs and results of the AI operations."""

from pydantic import Field, SkipValidation, field_validator
from typing import List, Literal, Optional
import enum

from recruitai.schemas.common import CamelModel


class BiasCategory(str, enum.Enum):
    GENDER = "gender"
    AGE = "age"
    RACIAL = "racial"
    EDUCATION = "education"
    LOCATION = "location"
    NAME = "name"
    EXPERIENCE = "experience"
    LANGUAGE = "language"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


Recommendation = Literal[
    "Strongly Recommended",
    "Recommended",
    "Recommended with Reservations",
    "Not Recommended",
]


# ===== INPUTS =====
class ResumeInput(CamelModel):
    text: str
    job_description: Optional[str] = None


class EmbeddingInput(CamelModel):
    text: str


class BiasDetectionInput(CamelModel):
    text: str
    context: Optional[str] = None


class VideoInterviewInput(CamelModel):
    # Kept as passed (usually a bytearray the caller scrubs)
    audio: SkipValidation[bytes] = Field(repr=False)
    filename: str
    video_type: str = "interview"
    questions: List[str] = Field(default_factory=list)
    job_description: Optional[str] = None
    candidate_resume: Optional[str] = None


# ===== RESULTS =====
class ResumeAnalysis(CamelModel):
    extracted_text: str
    summary: str
    skills: List[str] = Field(default_factory=list)
    experience_years: float = Field(ge=0)
    education: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    match_score: Optional[float] = Field(default=None, ge=0, le=1)


class EmbeddingResult(CamelModel):
    model: str
    dimensions: int
    vector: List[float]
    text_length: int


class BiasFlag(CamelModel):
    category: BiasCategory
    severity: Severity
    confidence: float = Field(ge=0, le=1)
    description: str

    @field_validator("category", mode="before")
    @classmethod
    def strip_bias_suffix(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            if value.endswith("_bias"):
                value = value[: -len("_bias")]
        return value


class BiasReport(CamelModel):
    bias_detected: bool
    fairness_score: float = Field(ge=0, le=1)
    flags: List[BiasFlag] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class CompetencyScore(CamelModel):
    name: str
    score: float = Field(ge=1, le=5)
    feedback: str = ""


class VideoInterviewAnalysis(CamelModel):
    transcript: str
    behavioral_analysis: str
    transcript_highlights: List[str] = Field(default_factory=list)
    competency_scores: List[CompetencyScore] = Field(default_factory=list)
    key_strengths: List[str] = Field(default_factory=list)
    areas_for_development: List[str] = Field(default_factory=list)
    overall_recommendation: Recommendation
    justification: str


__all__ = [
    "BiasCategory",
    "Severity",
    "Recommendation",
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
]
