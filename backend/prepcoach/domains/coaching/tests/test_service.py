"""Unit tests for CoachingService in live (fake client) and mock mode."""

import json
from unittest.mock import patch

import pytest

from prepcoach.adapters.inference.fake import FakeInferenceClient
from prepcoach.core.exceptions import (
    UpstreamFatalError,
    UpstreamRetryableError,
    UpstreamUnavailableError,
)
from prepcoach.domains.coaching.exceptions import AnalysisFailedError
from prepcoach.domains.coaching.service import CoachingService
from prepcoach.domains.coaching.tests.conftest import (
    CV_TEXT,
    _analysis_payload,
    _analysis_request,
    _answer_request,
    _configured_request,
    _make_invoker,
    _questions_request,
    _reply,
    _response_request,
)
from prepcoach.schemas.coaching import (
    AnswerEvaluation,
    DocumentAnalysis,
    QuestionSet,
    ResponseEvaluation,
)


def _service(client=None) -> CoachingService:
    return CoachingService(client=client, invoker=_make_invoker())


class TestMockMode:
    @pytest.mark.asyncio
    async def test_every_operation_returns_schema_valid_mock(self):
        service = _service()

        analysis = await service.analyze_documents(_analysis_request())
        questions = await service.generate_questions(_questions_request())
        configured = await service.generate_configured_questions(_configured_request())
        answer = await service.evaluate_answer(_answer_request())
        response = await service.evaluate_response(_response_request())

        assert service.is_live is False
        assert isinstance(analysis, DocumentAnalysis)
        assert questions.total_questions == len(questions.questions) == 8
        assert configured.total_questions == len(configured.questions) == 6
        assert isinstance(answer, AnswerEvaluation)
        assert isinstance(response, ResponseEvaluation)

    @pytest.mark.asyncio
    async def test_mocks_are_deterministic(self):
        service = _service()

        first = await service.generate_configured_questions(_configured_request())
        second = await service.generate_configured_questions(_configured_request())

        assert first == second

    @pytest.mark.asyncio
    async def test_mock_round_trips_through_wire_format(self):
        analysis = await _service().analyze_documents(_analysis_request())

        wire = analysis.model_dump(by_alias=True)

        assert "skillsMatch" in wire
        assert DocumentAnalysis.model_validate(wire) == analysis


class TestLiveMode:
    @pytest.mark.asyncio
    async def test_analysis_parsed_from_reply(self):
        client = FakeInferenceClient(_reply(_analysis_payload()))

        result = await _service(client).analyze_documents(_analysis_request())

        assert result.skills_match == 71
        assert CV_TEXT in client.prompts[0]

    @pytest.mark.asyncio
    async def test_fenced_reply_accepted(self):
        client = FakeInferenceClient(f"```json\n{_reply(_analysis_payload())}\n```")

        result = await _service(client).analyze_documents(_analysis_request())

        assert result.experience_level == "Senior"

    @pytest.mark.asyncio
    async def test_question_prompt_truncates_cv(self):
        mock = await _service().generate_questions(_questions_request())
        client = FakeInferenceClient(_reply(mock.model_dump(by_alias=True)))
        request = _questions_request().model_copy(update={"cv_text": "x" * 5000})

        result = await _service(client).generate_questions(request)

        assert isinstance(result, QuestionSet)
        assert "x" * 1001 not in client.prompts[0]

    @pytest.mark.asyncio
    async def test_configured_prompt_states_question_count(self):
        mock = await _service().generate_configured_questions(_configured_request())
        client = FakeInferenceClient(_reply(mock.model_dump(by_alias=True)))

        await _service(client).generate_configured_questions(_configured_request())

        assert "exactly 6 interview questions" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_unparseable_reply_is_not_retried(self):
        client = FakeInferenceClient("Sorry, I can't do that.")

        with pytest.raises(AnalysisFailedError):
            await _service(client).evaluate_answer(_answer_request())

        assert len(client.prompts) == 1

    @pytest.mark.asyncio
    async def test_schema_mismatch_is_analysis_failure(self):
        client = FakeInferenceClient(json.dumps({"score": "great"}))

        with pytest.raises(AnalysisFailedError):
            await _service(client).evaluate_answer(_answer_request())

    @pytest.mark.asyncio
    async def test_overload_retried_then_succeeds(self):
        client = FakeInferenceClient(
            UpstreamRetryableError("Anthropic", 529),
            UpstreamRetryableError("Anthropic", 429),
            _reply(_analysis_payload()),
        )

        result = await _service(client).analyze_documents(_analysis_request())

        assert result.skills_match == 71
        assert len(client.prompts) == 3

    @pytest.mark.asyncio
    async def test_persistent_overload_surfaces_unavailable(self):
        client = FakeInferenceClient(UpstreamRetryableError("Anthropic", 503))

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await _service(client).analyze_documents(_analysis_request())

        assert exc_info.value.attempts == 4
        assert len(client.prompts) == 4

    @pytest.mark.asyncio
    async def test_fatal_error_not_retried(self):
        client = FakeInferenceClient(UpstreamFatalError("Anthropic", 400, "prompt too long"))

        with pytest.raises(UpstreamFatalError):
            await _service(client).analyze_documents(_analysis_request())

        assert len(client.prompts) == 1


class TestCompletion:
    @pytest.mark.asyncio
    async def test_reply_comes_from_configured_client(self):
        client = FakeInferenceClient(_reply(_analysis_payload()), model_name="claude-test")

        with patch("prepcoach.domains.coaching.service.logger") as log:
            await _service(client).analyze_documents(_analysis_request())

        log.with_context.assert_called_once_with(operation="analysis", model="claude-test")
        assert len(client.prompts) == 1
