"""API endpoints for the interview coaching operations.

Each endpoint forwards to the coaching service, which calls the language
model when a credential is configured and returns a deterministic mock
of the same shape otherwise.
"""

from fastapi import APIRouter

from prepcoach.api.deps import Inject
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

router = APIRouter()


@router.post("/analyze-documents", response_model=DocumentAnalysis)
async def analyze_documents(
    request: DocumentAnalysisRequest,
    coaching: CoachingServiceProtocol = Inject(CoachingServiceProtocol),
) -> DocumentAnalysis:
    """Compare a CV against a job description.

    Returns skills match, strengths, gaps and focus areas. Answers 500 when
    the model reply cannot be read as an analysis.
    """
    return await coaching.analyze_documents(request)


@router.post("/generate-questions", response_model=QuestionSet)
async def generate_questions(
    request: QuestionGenerationRequest,
    coaching: CoachingServiceProtocol = Inject(CoachingServiceProtocol),
) -> QuestionSet:
    """Generate a personalised set of practice questions."""
    return await coaching.generate_questions(request)


@router.post("/generate-configured-questions", response_model=QuestionSet)
async def generate_configured_questions(
    request: ConfiguredQuestionRequest,
    coaching: CoachingServiceProtocol = Inject(CoachingServiceProtocol),
) -> QuestionSet:
    """Generate practice questions following an explicit configuration."""
    return await coaching.generate_configured_questions(request)


@router.post("/evaluate-answer", response_model=AnswerEvaluation)
async def evaluate_answer(
    request: AnswerEvaluationRequest,
    coaching: CoachingServiceProtocol = Inject(CoachingServiceProtocol),
) -> AnswerEvaluation:
    """Short feedback on one answer."""
    return await coaching.evaluate_answer(request)


@router.post("/evaluate-response", response_model=ResponseEvaluation)
async def evaluate_response(
    request: ResponseEvaluationRequest,
    coaching: CoachingServiceProtocol = Inject(CoachingServiceProtocol),
) -> ResponseEvaluation:
    """Detailed, multi-dimensional feedback on one answer."""
    return await coaching.evaluate_response(request)
