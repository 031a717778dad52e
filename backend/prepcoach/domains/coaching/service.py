"""Coaching service.

Each operation builds a prompt, calls the inference client through the
ResilientInvoker, and validates the reply against a strict schema. Without
an inference client every operation returns its deterministic mock.
"""

import time
from typing import Optional, Type, TypeVar

from pydantic import BaseModel

from prepcoach.core.logging import logger
from prepcoach.core.protocols.inference import InferenceClient
from prepcoach.core.resilience import ResilientInvoker
from prepcoach.domains.coaching import mocks, prompts
from prepcoach.domains.coaching.exceptions import AnalysisFailedError
from prepcoach.domains.coaching.parsing import parse_completion
from prepcoach.domains.coaching.protocols import CoachingServiceProtocol
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

ModelT = TypeVar("ModelT", bound=BaseModel)

ANALYSIS_MAX_TOKENS = 1500
QUESTIONS_MAX_TOKENS = 2500
ANSWER_EVALUATION_MAX_TOKENS = 1000
RESPONSE_EVALUATION_MAX_TOKENS = 2500


class CoachingService(CoachingServiceProtocol):
    """Interview preparation operations backed by a language model."""

    def __init__(
        self,
        client: Optional[InferenceClient],
        invoker: ResilientInvoker,
        deadline_seconds: Optional[float] = None,
    ) -> None:
        """Initialize the service.

        Args:
            client: Inference client, or None to serve mocks.
            invoker: Retry wrapper for calls to the client.
            deadline_seconds: Upper bound on one operation including retries.
        """
        self._client = client
        self._invoker = invoker
        self._deadline_seconds = deadline_seconds

    @property
    def is_live(self) -> bool:
        """Whether replies come from the model rather than mocks."""
        return self._client is not None

    async def analyze_documents(self, request: DocumentAnalysisRequest) -> DocumentAnalysis:
        """Compare a CV against a job description."""
        if self._client is None:
            return mocks.mock_document_analysis()
        prompt = prompts.build_analysis_prompt(request.cv_text, request.job_description)
        return await self._complete(
            self._client, "analysis", prompt, ANALYSIS_MAX_TOKENS, DocumentAnalysis
        )

    async def generate_questions(self, request: QuestionGenerationRequest) -> QuestionSet:
        """Generate a personalised set of practice questions."""
        if self._client is None:
            return mocks.mock_question_set()
        prompt = prompts.build_questions_prompt(
            request.cv_text, request.job_description, request.analysis
        )
        return await self._complete(
            self._client, "question generation", prompt, QUESTIONS_MAX_TOKENS, QuestionSet
        )

    async def generate_configured_questions(
        self, request: ConfiguredQuestionRequest
    ) -> QuestionSet:
        """Generate practice questions that follow a configuration."""
        if self._client is None:
            return mocks.mock_configured_question_set(request.configuration)
        prompt = prompts.build_configured_questions_prompt(
            request.cv_text, request.job_description, request.analysis, request.configuration
        )
        return await self._complete(
            self._client, "question generation", prompt, QUESTIONS_MAX_TOKENS, QuestionSet
        )

    async def evaluate_answer(self, request: AnswerEvaluationRequest) -> AnswerEvaluation:
        """Short feedback on one answer."""
        if self._client is None:
            return mocks.mock_answer_evaluation()
        prompt = prompts.build_answer_evaluation_prompt(
            request.question, request.answer, request.question_context
        )
        return await self._complete(
            self._client, "evaluation", prompt, ANSWER_EVALUATION_MAX_TOKENS, AnswerEvaluation
        )

    async def evaluate_response(self, request: ResponseEvaluationRequest) -> ResponseEvaluation:
        """Detailed multi-dimensional feedback on one answer."""
        if self._client is None:
            return mocks.mock_response_evaluation()
        prompt = prompts.build_response_evaluation_prompt(
            request.question,
            request.answer,
            request.cv_context,
            request.question_category,
            request.question_context,
        )
        return await self._complete(
            self._client, "evaluation", prompt, RESPONSE_EVALUATION_MAX_TOKENS, ResponseEvaluation
        )

    async def _complete(
        self,
        client: InferenceClient,
        operation: str,
        prompt: str,
        max_tokens: int,
        model: Type[ModelT],
    ) -> ModelT:
        log = logger.with_context(operation=operation, model=client.model_name)
        deadline = None
        if self._deadline_seconds:
            deadline = time.monotonic() + self._deadline_seconds

        started = time.monotonic()
        text = await self._invoker.invoke(
            lambda: client.complete(
                prompt, max_tokens=max_tokens, system_prompt=prompts.SYSTEM_PROMPT
            ),
            deadline=deadline,
        )
        try:
            result = parse_completion(text, model, operation)
        except AnalysisFailedError as e:
            log.error(f"{e.message}. Reply preview: {text[:200]!r}")
            raise
        log.info(f"Completed {operation} in {time.monotonic() - started:.2f}s")
        return result
