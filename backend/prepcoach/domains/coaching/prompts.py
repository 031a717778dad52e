"""Prompt builders for the coaching operations.

Each builder returns the user prompt. Every prompt ends with the exact JSON
shape the reply must have; the reply is validated against the matching
schema in ``prepcoach.schemas.coaching``.
"""

import json
from typing import Any, Optional

from prepcoach.schemas.coaching import QuestionConfiguration, QuestionContext

SYSTEM_PROMPT = (
    "You are an expert career coach and interview preparation specialist. "
    "Reply with a single JSON object and nothing else: no markdown, no commentary."
)

# Question prompts only see the start of the CV.
CV_SUMMARY_CHARS = 1000

_ANALYSIS_SHAPE = {
    "skillsMatch": 85,
    "experienceLevel": "Mid-level",
    "experienceGaps": ["Leadership experience", "Cloud platforms"],
    "strengths": ["Strong technical skills", "Relevant education"],
    "focusAreas": ["Prepare examples of leadership", "Practice STAR method"],
    "overallFit": "Good match with some areas for improvement",
    "confidenceLevel": "Medium-High",
    "keyRecommendations": ["Emphasize your technical problem-solving abilities"],
}

_QUESTION_SET_SHAPE = {
    "questions": [
        {
            "id": 1,
            "category": "Technical",
            "question": "Can you walk me through your experience with <technology from the job>?",
            "focusArea": "Address technical skill requirements",
            "difficulty": "medium",
            "tips": "Use the STAR method and provide specific examples",
        }
    ],
    "totalQuestions": 8,
    "estimatedDuration": "45-60 minutes",
    "preparationTips": ["Research the company's recent projects and initiatives"],
}

_ANSWER_EVALUATION_SHAPE = {
    "score": 75,
    "strengths": ["Clear structure and logical flow"],
    "improvements": ["Missing quantifiable results"],
    "overallFeedback": "Good answer that demonstrates relevant experience.",
    "suggestedRevision": "Restructure the answer using Situation, Task, Action, Result.",
    "keyTakeaways": ["Include quantifiable results when possible"],
}

_RESPONSE_EVALUATION_SHAPE = {
    "overallScore": 85,
    "scores": {
        "relevance": 9,
        "completeness": 8,
        "clarity": 8,
        "structure": 7,
        "examples": 9,
        "confidence": 8,
    },
    "strengths": ["Provided specific example with quantifiable results"],
    "improvements": ["Could have mentioned team collaboration"],
    "feedback": "Strong response with concrete examples.",
    "suggestedAnswer": "A more complete answer might also cover how you worked with the team.",
    "keywordAnalysis": {
        "used": ["leadership", "results"],
        "missing": ["stakeholder management"],
        "industrySpecific": ["agile"],
    },
    "detailedAnalysis": {
        "communicationStyle": "Clear and professional",
        "storytelling": "Good use of narrative structure",
        "technicalDepth": "Appropriate level of detail",
        "businessImpact": "Well articulated",
    },
    "nextSteps": ["Prepare metrics for similar scenarios"],
}


def _shape(example: dict) -> str:
    return json.dumps(example, indent=2)


def _cv_summary(cv_text: str) -> str:
    if len(cv_text) <= CV_SUMMARY_CHARS:
        return cv_text
    return cv_text[:CV_SUMMARY_CHARS] + "..."


def build_analysis_prompt(cv_text: str, job_description: str) -> str:
    """Compare a CV against a job description."""
    return f"""## Task

Analyze how well the CV below matches the job description and give structured,
actionable feedback that helps the candidate prepare for the interview.
`skillsMatch` is a percentage from 0 to 100.

## CV

{cv_text}

## Job Description

{job_description}

## Response Format

{_shape(_ANALYSIS_SHAPE)}"""


def build_questions_prompt(
    cv_text: str, job_description: str, analysis: Optional[dict[str, Any]]
) -> str:
    """Generate 8 to 10 personalised interview questions."""
    return f"""## Task

Generate 8-10 personalised interview questions. The questions should:
1. Address the experience gaps identified in the analysis
2. Let the candidate show their strengths
3. Suit the role and the candidate's experience level
4. Mix technical, behavioral, and situational questions

`difficulty` is one of "easy", "medium", "hard".

## CV Summary

{_cv_summary(cv_text)}

## Job Description

{job_description}

## Analysis

{json.dumps(analysis or {})}

## Response Format

{_shape(_QUESTION_SET_SHAPE)}"""


def build_configured_questions_prompt(
    cv_text: str,
    job_description: str,
    analysis: Optional[dict[str, Any]],
    configuration: QuestionConfiguration,
) -> str:
    """Generate questions that follow a user-chosen configuration."""
    config = configuration.model_dump(by_alias=True)
    shape = dict(_QUESTION_SET_SHAPE)
    question = dict(shape["questions"][0], type="detailed_explanation")
    if configuration.include_follow_ups:
        question["followUpQuestions"] = ["What challenges did you face?"]
    shape.update(
        questions=[question],
        totalQuestions=configuration.total_questions,
        estimatedDuration=f"{configuration.time_limit} minutes",
    )

    extras = []
    if configuration.industry_specific:
        extras.append("Use industry-specific terminology and current trends.")
    if configuration.include_follow_ups:
        extras.append("Give each question one or two follow-up questions.")

    return f"""## Task

Generate exactly {configuration.total_questions} interview questions that:
1. Follow the category distribution (percentages): {json.dumps(configuration.categories)}
2. Match the difficulty level: {configuration.difficulty}
3. Use only these question types: {json.dumps(configuration.question_types)}
4. Address the experience gaps identified in the analysis
5. Suit the role and the candidate's experience level
{chr(10).join(extras)}

## CV Summary

{_cv_summary(cv_text)}

## Job Description

{job_description}

## Analysis

{json.dumps(analysis or {})}

## Configuration

{json.dumps(config)}

## Response Format

{_shape(shape)}"""


def build_answer_evaluation_prompt(
    question: str, answer: str, context: Optional[QuestionContext]
) -> str:
    """Short constructive feedback on one answer."""
    context = context or QuestionContext()
    return f"""## Task

Evaluate the candidate's answer to the interview question. Be constructive and
encouraging while giving specific, actionable feedback. `score` is 0 to 100.

## Question

{question}

## Question Context

Category: {context.category or "General"}
Focus Area: {context.focus_area or "General assessment"}
Difficulty: {context.difficulty or "medium"}

## Candidate's Answer

{answer}

## Response Format

{_shape(_ANSWER_EVALUATION_SHAPE)}"""


def build_response_evaluation_prompt(
    question: str,
    answer: str,
    cv_context: Optional[str],
    question_category: Optional[str],
    question_context: Optional[dict[str, Any]],
) -> str:
    """Detailed multi-dimensional review of one answer."""
    return f"""## Task

Evaluate this interview response as an interview coach and HR professional.
`overallScore` is 0 to 100; each entry of `scores` is 0 to 10.

## Question

{question}

Category: {question_category or "General"}
Context: {json.dumps(question_context or {})}

## Candidate's Answer

{answer}

## CV Context

{cv_context or "Not provided"}

## Response Format

{_shape(_RESPONSE_EVALUATION_SHAPE)}"""
