"""Coaching schemas: inference proxy requests and the strict response shapes.

Responses from the model are validated against these models; anything that
does not fit is an analysis failure, never a partially filled object.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from prepcoach.schemas._base import CamelModel

Difficulty = Literal["easy", "medium", "hard"]


# ---------------------------------------------------------------------------
# Document analysis
# ---------------------------------------------------------------------------


class DocumentAnalysisRequest(CamelModel):
    """CV and job description to compare."""

    cv_text: str = Field(..., min_length=1, description="Plain text of the candidate's CV")
    job_description: str = Field(..., min_length=1, description="Plain text of the job posting")


class DocumentAnalysis(CamelModel):
    """How well a CV fits a job description."""

    skills_match: int = Field(..., ge=0, le=100, description="Percentage match of skills")
    experience_level: str
    experience_gaps: List[str]
    strengths: List[str]
    focus_areas: List[str]
    overall_fit: str
    confidence_level: str
    key_recommendations: List[str]

    model_config = {
        "json_schema_extra": {
            "example": {
                "skillsMatch": 82,
                "experienceLevel": "Mid-level",
                "experienceGaps": ["Leadership experience"],
                "strengths": ["Strong technical skills"],
                "focusAreas": ["Prepare leadership examples"],
                "overallFit": "Good match with room for growth",
                "confidenceLevel": "Medium-High",
                "keyRecommendations": ["Research the company's tech stack"],
            }
        }
    }


# ---------------------------------------------------------------------------
# Question generation
# ---------------------------------------------------------------------------


class InterviewQuestion(CamelModel):
    """A single practice question."""

    id: int
    category: str
    question: str = Field(..., min_length=1)
    focus_area: str
    difficulty: Difficulty
    tips: str
    type: Optional[str] = None
    follow_up_questions: Optional[List[str]] = None


class QuestionSet(CamelModel):
    """A generated set of practice questions."""

    questions: List[InterviewQuestion] = Field(..., min_length=1)
    total_questions: int = Field(..., ge=1)
    estimated_duration: str
    preparation_tips: List[str]


class QuestionGenerationRequest(CamelModel):
    """Inputs for personalised question generation."""

    cv_text: str = Field(..., min_length=1)
    job_description: str = Field(..., min_length=1)
    analysis: Optional[Dict[str, Any]] = Field(
        None, description="Output of document analysis, if already computed"
    )


class QuestionConfiguration(CamelModel):
    """User-chosen shape of a question set."""

    total_questions: int = Field(..., ge=1, le=50)
    categories: Dict[str, float] = Field(
        ..., min_length=1, description="Category name to percentage of questions"
    )
    difficulty: Literal["easy", "medium", "hard", "mixed"] = "mixed"
    question_types: Dict[str, bool] = Field(
        default_factory=dict, description="Question type name to enabled flag"
    )
    time_limit: int = Field(30, ge=1, description="Session length in minutes")
    industry_specific: bool = False
    include_follow_ups: bool = False


class ConfiguredQuestionRequest(QuestionGenerationRequest):
    """Question generation constrained by a configuration."""

    configuration: QuestionConfiguration


# ---------------------------------------------------------------------------
# Answer evaluation
# ---------------------------------------------------------------------------


class QuestionContext(CamelModel):
    """What the question was probing for."""

    category: Optional[str] = None
    focus_area: Optional[str] = None
    difficulty: Optional[str] = None


class AnswerEvaluationRequest(CamelModel):
    """A question and the candidate's answer to it."""

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    question_context: Optional[QuestionContext] = None


class AnswerEvaluation(CamelModel):
    """Short-form feedback on one answer."""

    score: int = Field(..., ge=0, le=100)
    strengths: List[str]
    improvements: List[str]
    overall_feedback: str
    suggested_revision: str
    key_takeaways: List[str]


class ResponseEvaluationRequest(CamelModel):
    """A question, the answer, and optional CV context for a detailed review."""

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    cv_context: Optional[str] = None
    question_category: Optional[str] = None
    question_context: Optional[Dict[str, Any]] = None


class ResponseScores(CamelModel):
    """Per-dimension scores, 0 to 10."""

    relevance: float = Field(..., ge=0, le=10)
    completeness: float = Field(..., ge=0, le=10)
    clarity: float = Field(..., ge=0, le=10)
    structure: float = Field(..., ge=0, le=10)
    examples: float = Field(..., ge=0, le=10)
    confidence: float = Field(..., ge=0, le=10)


class KeywordAnalysis(CamelModel):
    used: List[str]
    missing: List[str]
    industry_specific: List[str]


class DetailedAnalysis(CamelModel):
    communication_style: str
    storytelling: str
    technical_depth: str
    business_impact: str


class ResponseEvaluation(CamelModel):
    """Detailed multi-dimensional feedback on one answer."""

    overall_score: float = Field(..., ge=0, le=100)
    scores: ResponseScores
    strengths: List[str]
    improvements: List[str]
    feedback: str
    suggested_answer: str
    keyword_analysis: KeywordAnalysis
    detailed_analysis: DetailedAnalysis
    next_steps: List[str]
