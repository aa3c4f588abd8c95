"""Configuration: frozen runtime snapshot and credential resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import os
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal, get_args

from dotenv import load_dotenv

from rephraser.actions import ActionRegistry, build_registry
from rephraser.errors import AuthError, ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

load_dotenv()

ProviderKind = Literal["openai", "anthropic", "mock"]
OutputMethod = Literal["clipboard", "notification", "dialog"]

PROVIDER_KINDS: tuple[str, ...] = get_args(ProviderKind)
OUTPUT_METHODS: tuple[str, ...] = get_args(OutputMethod)

# Conventional credential variables, used when a config omits api_key_env.
DEFAULT_CREDENTIAL_SOURCES: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

DEFAULT_MAX_INPUT_CHARS = 10_000


@dataclass(frozen=True)
class GenerationParameters:
    """Provider-agnostic generation knobs plus provider passthrough values."""

    temperature: float = 0.7
    max_output_tokens: int = 500
    #: Passed through verbatim to the provider request.
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate ranges and freeze the passthrough mapping."""
        if (
            not isinstance(self.temperature, (int, float))
            or isinstance(self.temperature, bool)
            or not math.isfinite(self.temperature)
            or not 0.0 <= self.temperature <= 2.0
        ):
            raise ConfigurationError(
                f"temperature must be between 0.0 and 2.0, got {self.temperature!r}",
                hint="Lower values are more deterministic; 0.7 is a sensible default.",
            )
        if (
            not isinstance(self.max_output_tokens, int)
            or isinstance(self.max_output_tokens, bool)
            or self.max_output_tokens < 1
        ):
            raise ConfigurationError(
                f"max_output_tokens must be a positive integer, got {self.max_output_tokens!r}",
            )
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def __hash__(self) -> int:
        # Passthrough values may be unhashable; equal parameters share keys.
        return hash((self.temperature, self.max_output_tokens, frozenset(self.extra)))


@dataclass(frozen=True)
class ProviderConfig:
    """Which backend to call and how patiently.

    ``credential_source`` names an environment variable; the secret itself
    never lives on the config.
    """

    kind: ProviderKind
    model: str
    credential_source: str | None = None
    timeout_s: float = 30.0
    #: Additional attempts after the first; 0 disables retries.
    max_retries: int = 2

    def __post_init__(self) -> None:
        """Validate provider selection and limits."""
        if self.kind not in PROVIDER_KINDS:
            raise ConfigurationError(
                f"Unknown provider: {self.kind!r}",
                hint=f"Supported providers: {', '.join(PROVIDER_KINDS)}",
            )
        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="For example model = 'gpt-4o-mini'.",
            )
        if self.credential_source is None and self.kind != "mock":
            object.__setattr__(
                self, "credential_source", DEFAULT_CREDENTIAL_SOURCES[self.kind]
            )
        if self.credential_source is not None and not self.credential_source.strip():
            raise ConfigurationError(
                "credential_source must name an environment variable",
                hint="For example api_key_env = 'OPENAI_API_KEY'.",
            )
        if not self.timeout_s > 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s!r}",
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must be ≥ 0, got {self.max_retries}",
                hint="max_retries counts extra attempts after the first call.",
            )


@dataclass(frozen=True)
class OutputConfig:
    """How the generated text reaches the user."""

    method: OutputMethod = "notification"
    title: str = "Rephraser"

    def __post_init__(self) -> None:
        """Validate the sink selector."""
        if self.method not in OUTPUT_METHODS:
            raise ConfigurationError(
                f"Unknown output method: {self.method!r}",
                hint=f"Supported methods: {', '.join(OUTPUT_METHODS)}",
            )


@dataclass(frozen=True)
class Config:
    """Immutable configuration snapshot for one Rephraser run.

    Example:
        config = Config(provider=ProviderConfig(kind="openai", model="gpt-4o-mini"))
        # The API key is read from OPENAI_API_KEY when the run starts.
    """

    provider: ProviderConfig
    generation: GenerationParameters = field(default_factory=GenerationParameters)
    output: OutputConfig = field(default_factory=OutputConfig)
    actions: ActionRegistry = field(default_factory=build_registry)
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS

    def __post_init__(self) -> None:
        """Validate the input limit."""
        if self.max_input_chars < 1:
            raise ConfigurationError(
                f"max_input_chars must be ≥ 1, got {self.max_input_chars}",
            )

    def __str__(self) -> str:
        """Return a developer-friendly representation without secrets."""
        return (
            f"Config(provider={self.provider.kind!r}, model={self.provider.model!r}, "
            f"credential_source={self.provider.credential_source!r}, "
            f"output={self.output.method!r}, actions={self.actions.names()!r})"
        )

    __repr__ = __str__


def resolve_credential(
    provider: ProviderConfig,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Look up the secret named by ``provider.credential_source``.

    Returns None for providers that need no credential.

    Raises:
        AuthError: If the variable is unset or blank. This happens before any
            network call, so it is distinguishable from a provider rejection
            (which carries a ``status_code``).
    """
    if provider.kind == "mock":
        return None

    env = os.environ if environ is None else environ
    name = provider.credential_source or DEFAULT_CREDENTIAL_SOURCES[provider.kind]
    value = env.get(name)
    if value is None or not value.strip():
        raise AuthError(
            f"API key required for {provider.kind}: {name} is not set",
            hint=f"Set the {name} environment variable (a .env file also works).",
            retryable=False,
            provider=provider.kind,
            phase="credentials",
        )
    return value.strip()
