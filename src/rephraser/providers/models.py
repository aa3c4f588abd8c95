"""Domain models for the provider transport layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from rephraser.config import GenerationParameters, ProviderConfig


@dataclass(frozen=True)
class InvocationRequest:
    """Everything one provider call needs, built fresh per call.

    ``input_text`` is the raw user text the prompt was rendered from; it is
    what the input-length limit applies to.
    """

    prompt: str
    input_text: str
    params: GenerationParameters
    provider: ProviderConfig


@dataclass(frozen=True)
class InvocationResult:
    """Generated text from one successful provider call."""

    text: str = ""
    #: Keys: ``input_tokens``, ``output_tokens``, ``total_tokens``.
    usage: Mapping[str, int] = field(default_factory=dict)
    model: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "usage", MappingProxyType(dict(self.usage)))
