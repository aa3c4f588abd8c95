"""Provider implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rephraser.errors import AuthError, ConfigurationError

from .anthropic import AnthropicProvider
from .base import Provider
from .mock import MockProvider
from .models import InvocationRequest, InvocationResult
from .openai import OpenAIProvider

if TYPE_CHECKING:
    from rephraser.config import ProviderConfig


def create_provider(config: ProviderConfig, api_key: str | None) -> Provider:
    """Select the provider variant for ``config.kind``.

    Raises:
        AuthError: If a network provider is requested without a credential.
        ConfigurationError: If the kind is not a known variant.
    """
    if config.kind == "mock":
        return MockProvider()

    if not api_key:
        raise AuthError(
            f"API key required for {config.kind}",
            hint=f"Set {config.credential_source} or pass api_key explicitly.",
            retryable=False,
            provider=config.kind,
            phase="credentials",
        )

    if config.kind == "openai":
        return OpenAIProvider(
            api_key, config.model, credential_source=config.credential_source
        )
    if config.kind == "anthropic":
        return AnthropicProvider(
            api_key, config.model, credential_source=config.credential_source
        )

    raise ConfigurationError(f"Unknown provider: {config.kind!r}")


__all__ = [
    "AnthropicProvider",
    "InvocationRequest",
    "InvocationResult",
    "MockProvider",
    "OpenAIProvider",
    "Provider",
    "create_provider",
]
