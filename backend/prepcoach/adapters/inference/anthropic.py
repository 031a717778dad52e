"""Anthropic Claude inference adapter.

Implements InferenceClient with the official ``anthropic`` SDK. SDK-level
retries are disabled; retry policy belongs to ResilientInvoker, so SDK
errors are translated into the upstream retryable / fatal taxonomy here.
"""

from typing import Optional

from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic

from prepcoach.core.exceptions import UpstreamFatalError, UpstreamRetryableError

SERVICE_NAME = "Anthropic"


class AnthropicInferenceClient:
    """Anthropic Messages API client."""

    def __init__(self, api_key: str, model: str, timeout_seconds: float = 60.0):
        """Build the async SDK client."""
        self._client = AsyncAnthropic(api_key=api_key, max_retries=0, timeout=timeout_seconds)
        self._model = model

    @property
    def model_name(self) -> str:
        """Model identifier sent with every request."""
        return self._model

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int = 2000,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate a complete response using the Messages API."""
        kwargs: dict = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await self._client.messages.create(**kwargs)
        except APIStatusError as e:
            if e.status_code == 429 or e.status_code >= 500:
                raise UpstreamRetryableError(SERVICE_NAME, e.status_code, e.message) from e
            raise UpstreamFatalError(SERVICE_NAME, e.status_code, e.message) from e
        except APIConnectionError as e:
            raise UpstreamRetryableError(SERVICE_NAME, None, str(e)) from e

        return self._extract_text(response)

    @staticmethod
    def _extract_text(response) -> str:
        """Concatenate the text blocks of a Messages response."""
        parts = []
        for block in response.content:
            if hasattr(block, "text"):
                parts.append(block.text)
        return "".join(parts)
