"""OpenAI provider implementation (chat completions wire protocol)."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from rephraser.errors import ProviderError, ResponseError
from rephraser.providers._errors import wrap_provider_error
from rephraser.providers._utils import passthrough_kwargs
from rephraser.providers.models import InvocationResult

if TYPE_CHECKING:
    from rephraser.config import GenerationParameters


class OpenAIProvider:
    """OpenAI Chat Completions provider."""

    name = "openai"

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
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise ProviderError(
                    "openai package not installed",
                    hint="pip install openai",
                    provider=self.name,
                ) from e
            # Retries belong to the invocation pipeline, not the SDK.
            self._client = AsyncOpenAI(
                api_key=self.api_key, base_url=self.base_url, max_retries=0
            )
        return self._client

    def build_request(self, prompt: str, params: GenerationParameters) -> dict[str, Any]:
        """Build chat completion kwargs with a single user message."""
        create_kwargs = passthrough_kwargs(params)
        create_kwargs["model"] = self.model
        create_kwargs["messages"] = [{"role": "user", "content": prompt}]
        create_kwargs["temperature"] = params.temperature
        create_kwargs["max_tokens"] = params.max_output_tokens
        return create_kwargs

    async def complete(
        self, prompt: str, params: GenerationParameters
    ) -> InvocationResult:
        """Generate a completion using OpenAI's chat completions endpoint."""
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
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
                message="OpenAI completion failed",
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
    """Extract the first choice's message text and token usage."""
    choices = getattr(response, "choices", None)
    if not choices:
        raise ResponseError(
            "OpenAI response contained no choices",
            retryable=False,
            provider="openai",
            phase="parse",
        )
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if content is None:
        text = ""
    elif isinstance(content, str):
        text = content
    else:
        raise ResponseError(
            f"OpenAI message content has unexpected type {type(content).__name__}",
            retryable=False,
            provider="openai",
            phase="parse",
        )

    usage: dict[str, int] = {}
    usage_raw = getattr(response, "usage", None)
    if usage_raw is not None:
        usage = {
            "input_tokens": int(getattr(usage_raw, "prompt_tokens", 0) or 0),
            "output_tokens": int(getattr(usage_raw, "completion_tokens", 0) or 0),
            "total_tokens": int(getattr(usage_raw, "total_tokens", 0) or 0),
        }

    model = getattr(response, "model", None)
    return InvocationResult(
        text=text,
        usage=usage,
        model=model if isinstance(model, str) else None,
    )


def _sdk_network_errors() -> tuple[type[BaseException], ...]:
    """OpenAI SDK connection errors (timeouts subclass these)."""
    from openai import APIConnectionError

    return (APIConnectionError,)
