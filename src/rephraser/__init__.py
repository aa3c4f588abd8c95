"""Rephraser: apply named prompt templates to text through an LLM.

Public API:
    - rephrase(): Run one action over one text and deliver the result
    - list_actions(): Actions available under a configuration
    - Config: Frozen configuration snapshot
    - load_config(): Build a Config from the settings file
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

from rephraser.actions import ActionDefinition, ActionRegistry, build_registry
from rephraser.config import (
    Config,
    GenerationParameters,
    OutputConfig,
    ProviderConfig,
    resolve_credential,
)
from rephraser.errors import (
    ActionNotFoundError,
    AuthError,
    ConfigurationError,
    ErrorKind,
    InputTooLongError,
    InternalError,
    InvocationTimeoutError,
    OutputDispatchError,
    ProviderError,
    RateLimitError,
    RephraserError,
    ResponseError,
    TemplateError,
    TransportError,
)
from rephraser.execute import execute_invocation, validate_input
from rephraser.loaders import load_config
from rephraser.output import DeliveryBackend, dispatch
from rephraser.providers import create_provider
from rephraser.providers.models import InvocationRequest
from rephraser.retry import RetryPolicy
from rephraser.template import TEXT_PLACEHOLDER, render

if TYPE_CHECKING:
    from rephraser.config import OutputMethod
    from rephraser.providers.base import Provider

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("rephraser")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("rephraser").addHandler(logging.NullHandler())

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RephraseResult:
    """Outcome of one delivered run."""

    action: str
    text: str
    method: OutputMethod
    #: Keys: ``input_tokens``, ``output_tokens``, ``total_tokens``.
    usage: dict[str, int] = field(default_factory=dict)
    #: Keys: ``attempts``, ``retry_delays_s``, ``duration_s``, ``model``.
    metrics: dict[str, Any] = field(default_factory=dict)


async def rephrase(
    action: str,
    text: str,
    *,
    config: Config,
    backend: DeliveryBackend | None = None,
    provider: Provider | None = None,
    policy: RetryPolicy | None = None,
) -> RephraseResult:
    """Transform *text* with *action* and deliver it via the configured sink.

    Args:
        action: Name of a registered action, matched exactly.
        text: The text to transform.
        config: Configuration snapshot; never mutated.
        backend: Delivery backend; defaults to the macOS backend.
        provider: Provider instance to use instead of one built from config.
        policy: Retry policy; defaults to the provider config's retry budget.

    Returns:
        RephraseResult with the generated text and the method used.

    Raises:
        RephraserError: A subclass tagged with the failing ErrorKind. A
            delivery failure fails the run even though generation succeeded.

    Example:
        config = Config(provider=ProviderConfig(kind="mock", model="mock"))
        result = await rephrase("polite", "hi", config=config, backend=my_backend)
        print(result.text)
    """
    definition = config.actions.resolve(action)
    validate_input(text, config.max_input_chars)
    prompt = render(definition.prompt_template, {TEXT_PLACEHOLDER: text})

    if provider is None:
        api_key = resolve_credential(config.provider)
        provider = create_provider(config.provider, api_key)

    request = InvocationRequest(
        prompt=prompt,
        input_text=text,
        params=config.generation,
        provider=config.provider,
    )
    try:
        trace = await execute_invocation(
            request,
            provider,
            max_input_chars=config.max_input_chars,
            policy=policy,
        )
    finally:
        try:
            await provider.aclose()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Cleanup should never mask the primary failure.
            logger.warning("Provider cleanup failed: %s", exc)

    delivery = dispatch(
        config.output.method,
        trace.result.text,
        backend=backend,
        title=config.output.title,
    )
    logger.info(
        "Rephrased with action=%s provider=%s method=%s attempts=%d",
        definition.name,
        config.provider.kind,
        delivery.method,
        trace.attempts,
    )
    return RephraseResult(
        action=definition.name,
        text=trace.result.text,
        method=delivery.method,
        usage=dict(trace.result.usage),
        metrics={
            "attempts": trace.attempts,
            "retry_delays_s": list(trace.delays_s),
            "duration_s": trace.duration_s,
            "model": trace.result.model or config.provider.model,
        },
    )


def list_actions(config: Config) -> list[ActionDefinition]:
    """Return the actions available under *config*, in registry order."""
    return list(config.actions)


__all__ = [
    "ActionDefinition",
    "ActionNotFoundError",
    "ActionRegistry",
    "AuthError",
    "Config",
    "ConfigurationError",
    "ErrorKind",
    "GenerationParameters",
    "InputTooLongError",
    "InternalError",
    "InvocationTimeoutError",
    "OutputConfig",
    "OutputDispatchError",
    "ProviderConfig",
    "ProviderError",
    "RateLimitError",
    "RephraseResult",
    "RephraserError",
    "ResponseError",
    "RetryPolicy",
    "TemplateError",
    "TransportError",
    "build_registry",
    "list_actions",
    "load_config",
    "rephrase",
]
