"""Unit tests for the Anthropic inference adapter."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from anthropic import APIConnectionError, APIStatusError

from prepcoach.adapters.inference.anthropic import AnthropicInferenceClient
from prepcoach.core.exceptions import UpstreamFatalError, UpstreamRetryableError

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(status: int) -> APIStatusError:
    response = httpx.Response(status, request=_REQUEST)
    return APIStatusError(f"status {status}", response=response, body=None)


def _client(create: AsyncMock) -> AnthropicInferenceClient:
    client = AnthropicInferenceClient(api_key="test-key", model="claude-test")
    client._client = SimpleNamespace(messages=SimpleNamespace(create=create))
    return client


class TestComplete:
    @pytest.mark.asyncio
    async def test_joins_text_blocks_and_sends_system_prompt(self):
        create = AsyncMock(
            return_value=SimpleNamespace(
                content=[SimpleNamespace(text='{"a": '), SimpleNamespace(text="1}")]
            )
        )

        text = await _client(create).complete("prompt", max_tokens=500, system_prompt="be json")

        assert text == '{"a": 1}'
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 500
        assert kwargs["system"] == "be json"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    @pytest.mark.asyncio
    async def test_no_system_prompt_omits_field(self):
        create = AsyncMock(return_value=SimpleNamespace(content=[SimpleNamespace(text="ok")]))

        await _client(create).complete("prompt")

        assert "system" not in create.call_args.kwargs

    @pytest.mark.parametrize("status", [429, 500, 529])
    @pytest.mark.asyncio
    async def test_retryable_statuses(self, status):
        client = _client(AsyncMock(side_effect=_status_error(status)))

        with pytest.raises(UpstreamRetryableError) as exc_info:
            await client.complete("prompt")

        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [400, 401, 404])
    @pytest.mark.asyncio
    async def test_fatal_statuses(self, status):
        client = _client(AsyncMock(side_effect=_status_error(status)))

        with pytest.raises(UpstreamFatalError):
            await client.complete("prompt")

    @pytest.mark.asyncio
    async def test_connection_error_is_retryable(self):
        client = _client(AsyncMock(side_effect=APIConnectionError(request=_REQUEST)))

        with pytest.raises(UpstreamRetryableError):
            await client.complete("prompt")
