"""Shared utilities for provider implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rephraser.providers.mock import MOCK_RESPONSE_KEY

if TYPE_CHECKING:
    from rephraser.config import GenerationParameters

# Keys only the mock provider reads; never sent over the wire.
_LOCAL_ONLY_KEYS: frozenset[str] = frozenset({MOCK_RESPONSE_KEY})


def passthrough_kwargs(params: GenerationParameters) -> dict[str, Any]:
    """Return ``params.extra`` as request kwargs, minus local-only keys.

    Callers set their core request fields after this, so passthrough values
    can add to a request but never replace the model, messages or limits.
    """
    return {k: v for k, v in params.extra.items() if k not in _LOCAL_ONLY_KEYS}
