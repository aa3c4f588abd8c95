"""Anthropic Messages API provider."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from rephraser.errors import ProviderError, ResponseError
from rephraser.providers._errors import wrap_provider_error
from rephraser.providers._utils import passthrough_kwargs
from rephraser.providers.models import InvocationResult

if TYPE_CHECKING:
    from rephraser.config import GenerationParameters


class AnthropicProvider:
    """Anthropic Messages API provider."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        credential_source: str | None = None,
        base_url: str | None = None,
    ) -> None:
        """Initialize with an API key and model identifier."""
        self.api_key = api_key
        self.model = model
        self.credential_source = credential_source
        self.base_url = base_url
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the async Anthropic client."""
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise ProviderError(
                    "anthropic package not installed",
                    hint="pip install anthropic",
                    provider=self.name,
                ) from e
            self._client = AsyncAnthropic(
                api_key=self.api_key, base_url=self.base_url, max_retries=0
            )
        return self._client

    def build_request(self, prompt: str, params: GenerationParameters) -> dict[str, Any]:
        """Build Messages API kwargs; ``max_tokens`` is mandatory for Anthropic."""
        create_kwargs = passthrough_kwargs(params)
        create_kwargs["model"] = self.model
        create_kwargs["messages"] = [{"role": "user", "content": prompt}]
        create_kwargs["max_tokens"] = params.max_output_tokens
        create_kwargs["temperature"] = params.temperature
        return create_kwargs

    async def complete(
        self, prompt: str, params: GenerationParameters
    ) -> InvocationResult:
        """Generate a completion using Anthropic's Messages API."""
        client = self._get_client()
        try:
            response = await client.messages.create(
                **self.build_request(prompt, params)
            )
        except asyncio.CancelledError:
            raise
        except ProviderError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.name,
                message="Anthropic completion failed",
                credential_source=self.credential_source,
                network_errors=_sdk_network_errors(),
            ) from e
        return _parse_response(response)

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _parse_response(response: Any) -> InvocationResult:
    """Parse an Anthropic Message into an InvocationResult.

    Only the first content block is read. An empty content list is a valid,
    empty completion.
    """
    content = getattr(response, "content", None)
    if not isinstance(content, list):
        raise ResponseError(
            "Anthropic response has no content list",
            retryable=False,
            provider="anthropic",
            phase="parse",
        )

    text = ""
    if content:
        first = content[0]
        block_type = getattr(first, "type", None)
        block_text = getattr(first, "text", None)
        if block_type != "text" or not isinstance(block_text, str):
            raise ResponseError(
                f"Anthropic first content block is {block_type!r}, expected 'text'",
                retryable=False,
                provider="anthropic",
                phase="parse",
            )
        text = block_text

    usage: dict[str, int] = {}
    usage_raw = getattr(response, "usage", None)
    if usage_raw is not None:
        input_tokens = int(getattr(usage_raw, "input_tokens", 0) or 0)
        output_tokens = int(getattr(usage_raw, "output_tokens", 0) or 0)
        usage = {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        }

    model = getattr(response, "model", None)
    return InvocationResult(
        text=text,
        usage=usage,
        model=model if isinstance(model, str) else None,
    )


def _sdk_network_errors() -> tuple[type[BaseException], ...]:
    """Anthropic SDK connection errors (timeouts subclass these)."""
    from anthropic import APIConnectionError

    return (APIConnectionError,)
