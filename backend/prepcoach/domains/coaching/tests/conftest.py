"""Coaching domain test fixtures and helpers."""

import json
from typing import Any

import pytest

from prepcoach.core.resilience import ResilientInvoker
from prepcoach.schemas.coaching import (
    AnswerEvaluationRequest,
    ConfiguredQuestionRequest,
    DocumentAnalysisRequest,
    QuestionConfiguration,
    QuestionGenerationRequest,
    ResponseEvaluationRequest,
)

CV_TEXT = "Senior Python developer. 6 years building APIs with FastAPI and PostgreSQL."
JOB_DESCRIPTION = "Backend engineer to own billing services. Python, Stripe, AWS."


async def _no_sleep(seconds: float) -> None:
    return None


def _make_invoker(max_retries: int = 3) -> ResilientInvoker:
    return ResilientInvoker("Anthropic", max_retries=max_retries, sleep=_no_sleep)


def _reply(payload: dict[str, Any]) -> str:
    return json.dumps(payload)


def _analysis_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "skillsMatch": 71,
        "experienceLevel": "Senior",
        "experienceGaps": ["AWS"],
        "strengths": ["FastAPI"],
        "focusAreas": ["Billing domain"],
        "overallFit": "Strong",
        "confidenceLevel": "High",
        "keyRecommendations": ["Read up on Stripe webhooks"],
    }
    payload.update(overrides)
    return payload


def _analysis_request() -> DocumentAnalysisRequest:
    return DocumentAnalysisRequest(cv_text=CV_TEXT, job_description=JOB_DESCRIPTION)


def _questions_request() -> QuestionGenerationRequest:
    return QuestionGenerationRequest(
        cv_text=CV_TEXT, job_description=JOB_DESCRIPTION, analysis={"skillsMatch": 71}
    )


def _configuration(**overrides: Any) -> QuestionConfiguration:
    values = dict(
        total_questions=6,
        categories={"technical": 50, "behavioral": 30, "situational": 20},
        difficulty="mixed",
        question_types={"detailed_explanation": True, "yes_no": False},
        time_limit=45,
    )
    values.update(overrides)
    return QuestionConfiguration(**values)


def _configured_request(**overrides: Any) -> ConfiguredQuestionRequest:
    return ConfiguredQuestionRequest(
        cv_text=CV_TEXT, job_description=JOB_DESCRIPTION, configuration=_configuration(**overrides)
    )


def _answer_request() -> AnswerEvaluationRequest:
    return AnswerEvaluationRequest(
        question="Tell me about a hard bug.", answer="I once traced a race in a webhook handler."
    )


def _response_request() -> ResponseEvaluationRequest:
    return ResponseEvaluationRequest(
        question="Tell me about a hard bug.",
        answer="I once traced a race in a webhook handler.",
        question_category="behavioral",
    )


@pytest.fixture
def invoker() -> ResilientInvoker:
    return _make_invoker()
