"""Deterministic responses used when no inference credential is configured.

They satisfy the same schemas as live replies, so callers cannot tell the
difference by shape.
"""

import math
from itertools import cycle

from prepcoach.schemas.coaching import (
    AnswerEvaluation,
    DocumentAnalysis,
    InterviewQuestion,
    QuestionConfiguration,
    QuestionSet,
    ResponseEvaluation,
)

PREPARATION_TIPS = [
    "Research the company's recent projects and initiatives",
    "Prepare specific examples using the STAR method",
    "Practice explaining technical concepts in simple terms",
    "Review your CV and be ready to discuss any point in detail",
]

_QUESTION_TEXT = {
    "technical": {
        "easy": "Can you explain your experience with basic programming concepts?",
        "medium": "Describe a challenging technical problem you've solved recently.",
        "hard": "How would you design a scalable system for processing millions of "
        "transactions per day?",
    },
    "behavioral": {
        "easy": "Tell me about yourself and your background.",
        "medium": "Describe a situation where you had to work under pressure to meet a deadline.",
        "hard": "Tell me about a time when you had to make a difficult decision with limited "
        "information.",
    },
    "situational": {
        "easy": "How would you handle a disagreement with a coworker?",
        "medium": "What would you do if you were assigned a project with an impossible deadline?",
        "hard": "How would you approach a major change that faces resistance?",
    },
    "company_specific": {
        "easy": "What interests you about our company?",
        "medium": "How do you see yourself contributing to our company culture?",
        "hard": "How would you put our company values into practice in your daily work?",
    },
}

_FOCUS_AREAS = {
    "technical": "Technical skills assessment",
    "behavioral": "Past experience and soft skills",
    "situational": "Problem-solving and adaptability",
    "company_specific": "Cultural fit and company knowledge",
}

_TIPS = {
    "technical": "Provide specific examples and explain your thought process",
    "behavioral": "Use the STAR method: Situation, Task, Action, Result",
    "situational": "Focus on your approach and reasoning, not just the outcome",
    "company_specific": "Show you've researched the company and understand its values",
}

_FOLLOW_UPS = {
    "technical": [
        "What challenges did you face?",
        "How did you overcome technical obstacles?",
    ],
    "behavioral": [
        "What was the outcome?",
        "What did you learn from this experience?",
    ],
    "situational": [
        "Why would you take that approach?",
        "What alternatives did you consider?",
    ],
    "company_specific": [
        "Why is that important to you?",
        "How does that align with your career goals?",
    ],
}


def mock_document_analysis() -> DocumentAnalysis:
    return DocumentAnalysis(
        skills_match=82,
        experience_level="Mid-level",
        experience_gaps=["Leadership experience", "Cloud platforms"],
        strengths=["Strong technical skills", "Relevant education", "Problem-solving abilities"],
        focus_areas=[
            "Prepare leadership examples",
            "Study cloud technologies",
            "Practice behavioral questions",
        ],
        overall_fit="Good match with room for growth",
        confidence_level="Medium-High",
        key_recommendations=[
            "Emphasize your technical problem-solving abilities",
            "Prepare specific examples of collaborative projects",
            "Research the company's tech stack thoroughly",
        ],
    )


def _question(
    id: int, category: str, question: str, focus_area: str, difficulty: str, tips: str
) -> InterviewQuestion:
    return InterviewQuestion(
        id=id,
        category=category,
        question=question,
        focus_area=focus_area,
        difficulty=difficulty,
        tips=tips,
    )


def mock_question_set() -> QuestionSet:
    questions = [
        _question(
            1,
            "Introduction",
            "Tell me about yourself and why you're interested in this position.",
            "Personal branding and motivation",
            "easy",
            "Keep it concise, focus on relevant experience, and connect to the role",
        ),
        _question(
            2,
            "Technical",
            "Describe your experience with the technologies mentioned in the job description.",
            "Technical competency assessment",
            "medium",
            "Provide specific examples and mention any recent projects",
        ),
        _question(
            3,
            "Behavioral",
            "Tell me about a challenging project you worked on and how you overcame obstacles.",
            "Problem-solving and resilience",
            "medium",
            "Use the STAR method: Situation, Task, Action, Result",
        ),
        _question(
            4,
            "Experience",
            "How do you handle working under pressure and tight deadlines?",
            "Stress management and time management",
            "medium",
            "Provide concrete examples and mention specific strategies you use",
        ),
        _question(
            5,
            "Behavioral",
            "Describe a time when you had to learn a new technology or skill quickly.",
            "Adaptability and learning ability",
            "medium",
            "Highlight your learning process and how you applied the new skill",
        ),
        _question(
            6,
            "Leadership",
            "Tell me about a time when you had to work with a difficult team member.",
            "Interpersonal skills and conflict resolution",
            "medium",
            "Focus on your approach to communication and problem-solving",
        ),
        _question(
            7,
            "Career",
            "Where do you see yourself in 5 years?",
            "Career goals and ambition",
            "easy",
            "Align your goals with the company's growth opportunities",
        ),
        _question(
            8,
            "Company",
            "What questions do you have for us about the role or company?",
            "Engagement and research",
            "easy",
            "Prepare thoughtful questions that show you've researched the company",
        ),
    ]
    return QuestionSet(
        questions=questions,
        total_questions=len(questions),
        estimated_duration="45-60 minutes",
        preparation_tips=list(PREPARATION_TIPS),
    )



def distribute(total: int, weights: dict[str, float]) -> dict[str, int]:
    """Split ``total`` across ``weights`` so the parts sum to exactly ``total``.

    Largest-remainder apportionment; ties go to the earlier key.
    """
    keys = list(weights)
    weight_sum = sum(max(w, 0.0) for w in weights.values())
    if weight_sum <= 0:
        weight_sum = float(len(keys))
        weights = {k: 1.0 for k in keys}
    quotas = {k: total * max(weights[k], 0.0) / weight_sum for k in keys}
    counts = {k: math.floor(q) for k, q in quotas.items()}
    leftover = total - sum(counts.values())
    by_remainder = sorted(keys, key=lambda k: (-(quotas[k] - counts[k]), keys.index(k)))
    for key in by_remainder[:leftover]:
        counts[key] += 1
    return counts


def mock_configured_question_set(configuration: QuestionConfiguration) -> QuestionSet:
    if configuration.difficulty == "mixed":
        difficulties = cycle(["easy", "medium", "hard"])
    else:
        difficulties = cycle([configuration.difficulty])
    enabled = [name for name, on in configuration.question_types.items() if on]
    types = cycle(enabled or ["standard"])

    questions = []
    counts = distribute(configuration.total_questions, configuration.categories)
    for category, count in counts.items():
        for _ in range(count):
            difficulty = next(difficulties)
            follow_ups = None
            if configuration.include_follow_ups:
                options = _FOLLOW_UPS.get(category, _FOLLOW_UPS["behavioral"])
                follow_ups = options[: 1 if difficulty == "easy" else 2]
            questions.append(
                InterviewQuestion(
                    id=len(questions) + 1,
                    category=category,
                    question=_QUESTION_TEXT.get(category, {}).get(
                        difficulty, "Tell me about your relevant experience for this role."
                    ),
                    focus_area=_FOCUS_AREAS.get(category, "General assessment"),
                    difficulty=difficulty,
                    type=next(types),
                    tips=_TIPS.get(category, "Be concise and specific with your answer"),
                    follow_up_questions=follow_ups,
                )
            )
    return QuestionSet(
        questions=questions,
        total_questions=configuration.total_questions,
        estimated_duration=f"{configuration.time_limit} minutes",
        preparation_tips=list(PREPARATION_TIPS),
    )


def mock_answer_evaluation() -> AnswerEvaluation:
    return AnswerEvaluation(
        score=78,
        strengths=[
            "Clear communication and structure",
            "Relevant examples provided",
            "Shows understanding of the question",
        ],
        improvements=[
            "Could include more specific metrics",
            "Consider using the STAR method",
            "Elaborate on the final outcome",
        ],
        overall_feedback=(
            "Good response that demonstrates relevant experience and skills. To make it "
            "even stronger, add more specific details about the results you achieved."
        ),
        suggested_revision=(
            "Try restructuring your answer using the STAR method (Situation, Task, Action, "
            "Result) to make it more comprehensive and impactful."
        ),
        key_takeaways=[
            "Use specific examples with measurable outcomes",
            "Structure answers using the STAR method",
            "Connect your experience to the role requirements",
        ],
    )


def mock_response_evaluation() -> ResponseEvaluation:
    return ResponseEvaluation.model_validate(
        {
            "overallScore": 78,
            "scores": {
                "relevance": 8,
                "completeness": 7,
                "clarity": 8,
                "structure": 7,
                "examples": 8,
                "confidence": 8,
            },
            "strengths": [
                "Clear communication and structure",
                "Relevant examples provided",
                "Shows understanding of the question",
                "Professional tone throughout",
            ],
            "improvements": [
                "Could include more specific metrics",
                "Consider using the STAR method more explicitly",
                "Elaborate on the final outcome and impact",
                "Add more details about challenges faced",
            ],
            "feedback": (
                "Good response that demonstrates relevant experience and skills. To make it "
                "even stronger, add specific details about the results you achieved and the "
                "challenges you overcame."
            ),
            "suggestedAnswer": (
                "Restructure your answer with the STAR method: 'In my previous role "
                "(Situation), I was tasked with... (Task), so I implemented... (Action), "
                "which resulted in... (Result).'"
            ),
            "keywordAnalysis": {
                "used": ["experience", "project", "team", "results"],
                "missing": ["leadership", "collaboration", "problem-solving", "innovation"],
                "industrySpecific": ["agile", "stakeholder", "metrics", "optimization"],
            },
            "detailedAnalysis": {
                "communicationStyle": "Clear and professional",
                "storytelling": "Good narrative flow",
                "technicalDepth": "Appropriate for the role",
                "businessImpact": "Could be more specific",
            },
            "nextSteps": [
                "Practice quantifying achievements with specific numbers",
                "Prepare examples that highlight leadership and collaboration",
                "Research industry-specific terminology for your field",
            ],
        }
    )
