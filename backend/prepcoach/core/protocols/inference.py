"""Inference client protocol.

Seam between the coaching domain and the hosted language model. One
request in, one text completion out; schema handling stays in the domain.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class InferenceClient(Protocol):
    """Text completion against a hosted model."""

    @property
    def model_name(self) -> str:
        """Identifier of the model requests are sent to."""
        ...

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int = 2000,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Return the model's text completion for ``prompt``.

        Raises:
            UpstreamRetryableError: 429 / 5xx / connection failure.
            UpstreamFatalError: Any other rejection (bad request, auth).
        """
        ...
