"""Mock provider for testing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rephraser.providers.models import InvocationResult

if TYPE_CHECKING:
    from rephraser.config import GenerationParameters

#: Key in ``GenerationParameters.extra`` that switches echo off.
MOCK_RESPONSE_KEY = "mock_response"


class MockProvider:
    """Deterministic provider that never touches the network.

    Echoes the prompt verbatim unless a canned response is configured, either
    at construction or via ``extra["mock_response"]``.
    """

    name = "mock"

    def __init__(self, response: str | None = None, *, model: str = "mock-model-v1") -> None:
        """Initialize with an optional canned response."""
        self.response = response
        self.model = model

    async def complete(
        self, prompt: str, params: GenerationParameters
    ) -> InvocationResult:
        """Return the canned response, or the prompt itself."""
        canned = params.extra.get(MOCK_RESPONSE_KEY, self.response)
        text = prompt if canned is None else str(canned)
        input_tokens = len(prompt.split())
        output_tokens = len(text.split())
        return InvocationResult(
            text=text,
            usage={
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            model=self.model,
        )

    async def aclose(self) -> None:
        """Nothing to release."""
