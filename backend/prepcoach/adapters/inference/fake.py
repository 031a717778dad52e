"""Fake inference client for testing."""

from typing import Optional, Union


class FakeInferenceClient:
    """Returns queued responses (or raises queued errors) in order."""

    def __init__(self, *responses: Union[str, Exception], model_name: str = "fake-model"):
        """Queue ``responses``; the last one repeats once the queue drains."""
        self._responses = list(responses)
        self._model_name = model_name
        self.prompts: list[str] = []

    @property
    def model_name(self) -> str:
        """Fixed model name."""
        return self._model_name

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int = 2000,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Record the prompt and return the next queued response."""
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError("FakeInferenceClient has no queued responses")
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return item
