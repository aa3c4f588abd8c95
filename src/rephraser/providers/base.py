"""Provider protocol: minimal interface for text-generation backends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rephraser.config import GenerationParameters
    from rephraser.providers.models import InvocationResult


@runtime_checkable
class Provider(Protocol):
    """Turns a rendered prompt into generated text."""

    @property
    def name(self) -> str:
        """Short provider identifier used in errors and logs."""
        ...

    async def complete(
        self, prompt: str, params: GenerationParameters
    ) -> InvocationResult:
        """Generate a completion for *prompt*.

        Raises:
            ProviderError: A subclass tagged with the normalized failure kind.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        ...
