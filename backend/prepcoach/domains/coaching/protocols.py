"""Coaching domain protocols."""

from typing import Protocol, runtime_checkable

from prepcoach.schemas.coaching import (
    AnswerEvaluation,
    AnswerEvaluationRequest,
    ConfiguredQuestionRequest,
    DocumentAnalysis,
    DocumentAnalysisRequest,
    QuestionGenerationRequest,
    QuestionSet,
    ResponseEvaluation,
    ResponseEvaluationRequest,
)


@runtime_checkable
class CoachingServiceProtocol(Protocol):
    """Interview preparation operations backed by a language model."""

    async def analyze_documents(self, request: DocumentAnalysisRequest) -> DocumentAnalysis:
        """Compare a CV against a job description."""
        ...

    async def generate_questions(self, request: QuestionGenerationRequest) -> QuestionSet:
        """Generate a personalised set of practice questions."""
        ...

    async def generate_configured_questions(
        self, request: ConfiguredQuestionRequest
    ) -> QuestionSet:
        """Generate practice questions that follow a configuration."""
        ...

    async def evaluate_answer(self, request: AnswerEvaluationRequest) -> AnswerEvaluation:
        """Short feedback on one answer."""
        ...

    async def evaluate_response(self, request: ResponseEvaluationRequest) -> ResponseEvaluation:
        """Detailed multi-dimensional feedback on one answer."""
        ...
