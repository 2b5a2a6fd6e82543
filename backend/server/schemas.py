"""
Request/response models for the HTTP surface.

Field names are snake_case in Python; the camelCase names used by the
frontend (and by the model's JSON output) are accepted as aliases and used
on output.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ------------------------------------------------------------------
# Profile
# ------------------------------------------------------------------

class UserStatus(str, Enum):
    STUDENT = "student"
    GRADUATE = "graduate"


class AssessmentAnswer(_Model):
    question: str
    score: int = Field(ge=1, le=10)


class UserProfile(_Model):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    name: str = ""
    description: str = ""
    major: str
    status: UserStatus = Field(default=UserStatus.STUDENT, validate_default=True)
    # Academic year for students, years of experience for graduates
    years_of_experience: int = Field(default=0, ge=0, alias="yearsOfExperience")
    assessment_answers: list[AssessmentAnswer] | None = Field(default=None, alias="assessmentAnswers")


# ------------------------------------------------------------------
# Generated content
# ------------------------------------------------------------------

class AnalysisResult(_Model):
    summary: str = ""
    strengths: list[str] = Field(default_factory=list)
    recommended_roles: list[str] = Field(default_factory=list, alias="recommendedRoles")


class RoadmapStep(_Model):
    title: str
    description: str = ""
    certifications: list[str] = Field(default_factory=list)
    platform: str = "General"
    duration: str = ""


class InterviewEvaluation(_Model):
    score: int = 0
    feedback: str = ""
    improvements: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        try:
            score = int(round(float(value)))
        except (TypeError, ValueError):
            return 0
        return max(0, min(100, score))


class ChatMessage(_Model):
    role: Literal["user", "model"]
    text: str


class CvData(_Model):
    full_name: str = Field(alias="fullName")
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    education: str = ""
    skills: str = ""
    experience: str = ""
    projects: str = ""
    summary: str = ""
    language: Literal["ar", "en"] = "ar"


# ------------------------------------------------------------------
# Requests
# ------------------------------------------------------------------

class QuestionsRequest(_Model):
    major: str = Field(min_length=1)


class RoadmapRequest(_Model):
    profile: UserProfile
    target_role: str = Field(min_length=1, alias="targetRole")


class ChatRequest(_Model):
    profile: UserProfile
    message: str = Field(min_length=1)
    history: list[ChatMessage] = Field(default_factory=list)


class CvRequest(_Model):
    profile: UserProfile
    cv_data: CvData = Field(alias="cvData")
    analysis: AnalysisResult | None = None


class InterviewStartRequest(_Model):
    # Empty role (no analysis yet) makes the start a no-op
    target_role: str = Field(default="", alias="targetRole")
    candidate_context: str = Field(default="", alias="candidateContext")


class EvaluationRequest(_Model):
    # Defaults to the last interview's transcript and role
    transcript: str | None = None
    role: str | None = None


# ------------------------------------------------------------------
# Responses
# ------------------------------------------------------------------

class QuestionsResponse(_Model):
    questions: list[str]


class RoadmapResponse(_Model):
    steps: list[RoadmapStep]


class ChatResponse(_Model):
    reply: str


class CvResponse(_Model):
    markdown: str


class InterviewStatusResponse(_Model):
    session_id: str | None
    phase: str
    agent_speaking: bool
    volume: float
    remaining_s: int
    remaining_label: str
    target_role: str
    last_error: str | None
    end_reason: str | None
