"""
Career guidance services (request/response glue around text generation).

Failure policy per operation:
- get_assessment_questions: fixed fallback question list
- analyze_profile:          raises TextGenerationError
- generate_roadmap:         empty list
- chat_with_advisor:        raises TextGenerationError
- generate_cv:              raises TextGenerationError
- evaluate_interview:       zero-score fallback evaluation
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from adapters.llm import prompts
from adapters.llm.text import TextGenerationAdapter, TextGenerationError
from observability.logger import exception_fields, log_event
from server.schemas import (
    AnalysisResult,
    ChatMessage,
    CvData,
    InterviewEvaluation,
    RoadmapStep,
    UserProfile,
)

_CHAT_ROLES = {"user": "user", "model": "assistant"}


def _unwrap_list(data: Any, key: str) -> list[Any]:
    """JSON mode returns an object; accept {"key": [...]} or a bare list."""
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise TextGenerationError(f"expected a list under {key!r}")
    return data


def _log_fallback(operation: str, error: Exception) -> None:
    log_event({
        "event_type": "career_service_fallback",
        "operation": operation,
        **exception_fields(error),
    })


class CareerService:
    """Stateless; one instance per process, shared by all requests."""

    def __init__(self, *, text: TextGenerationAdapter) -> None:
        self._text = text

    async def get_assessment_questions(self, major: str) -> list[str]:
        """Ten Arabic agree/disagree statements tailored to the major."""
        try:
            data = await self._text.complete_json(
                [{"role": "user", "content": prompts.assessment_questions_prompt(major)}],
                default={},
                operation="assessment_questions",
            )
            questions = [str(q).strip() for q in _unwrap_list(data, "questions") if str(q).strip()]
        except TextGenerationError as e:
            _log_fallback("assessment_questions", e)
            return list(prompts.FALLBACK_ASSESSMENT_QUESTIONS)

        if not questions:
            _log_fallback("assessment_questions", TextGenerationError("no questions returned"))
            return list(prompts.FALLBACK_ASSESSMENT_QUESTIONS)
        return questions

    async def analyze_profile(self, profile: UserProfile) -> AnalysisResult:
        """Summary, strengths and three recommended job titles."""
        data = await self._text.complete_json(
            [{"role": "user", "content": prompts.analysis_prompt(profile)}],
            default={},
            operation="analyze_profile",
        )
        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise TextGenerationError(f"analyze_profile returned an unexpected shape: {e}") from e

    async def generate_roadmap(self, profile: UserProfile, target_role: str) -> list[RoadmapStep]:
        """Five-step, six-month plan toward target_role; [] on failure."""
        try:
            data = await self._text.complete_json(
                [{"role": "user", "content": prompts.roadmap_prompt(profile, target_role)}],
                default={},
                operation="generate_roadmap",
            )
            return [RoadmapStep.model_validate(step) for step in _unwrap_list(data, "steps")]
        except (TextGenerationError, ValidationError) as e:
            _log_fallback("generate_roadmap", e)
            return []

    async def chat_with_advisor(
        self,
        history: list[ChatMessage],
        message: str,
        profile: UserProfile,
    ) -> str:
        messages = [{"role": "system", "content": prompts.advisor_instruction(profile)}]
        messages += [
            {"role": _CHAT_ROLES[m.role], "content": m.text}
            for m in history
        ]
        messages.append({"role": "user", "content": message})
        return await self._text.complete(messages, operation="chat_with_advisor")

    async def generate_cv(
        self,
        profile: UserProfile,
        analysis: AnalysisResult | None,
        cv_data: CvData,
    ) -> str:
        """ATS-friendly Markdown CV in Arabic or English."""
        return await self._text.complete(
            [{"role": "user", "content": prompts.cv_prompt(profile, analysis, cv_data)}],
            operation="generate_cv",
        )

    async def evaluate_interview(self, transcript: str, role: str) -> InterviewEvaluation:
        """Score the candidate 0-100 from the interview transcript."""
        try:
            data = await self._text.complete_json(
                [{"role": "user", "content": prompts.evaluation_prompt(transcript, role)}],
                default={},
                operation="evaluate_interview",
            )
            return InterviewEvaluation.model_validate(data)
        except (TextGenerationError, ValidationError, ValueError) as e:
            _log_fallback("evaluate_interview", e)
            return InterviewEvaluation(feedback=prompts.EVALUATION_ERROR_FEEDBACK_AR)
