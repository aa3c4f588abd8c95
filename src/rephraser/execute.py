"""Invocation pipeline: validation, timeout and retry around one provider call.

Each call walks ``Validating → Requesting → (Retrying)* → Succeeded | Failed``.
Attempts run strictly one after another; the attempt counter and backoff
delays live in an explicit ``RetryState``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import TYPE_CHECKING

from rephraser.errors import (
    InputTooLongError,
    InvocationTimeoutError,
    RephraserError,
)
from rephraser.providers._errors import wrap_provider_error
from rephraser.retry import RetryPolicy, RetryState, next_delay, should_retry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from rephraser.providers.base import Provider
    from rephraser.providers.models import InvocationRequest, InvocationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionTrace:
    """What the pipeline observed while producing one result."""

    result: InvocationResult
    attempts: int
    delays_s: tuple[float, ...] = ()
    duration_s: float = 0.0


def validate_input(text: str, max_input_chars: int) -> None:
    """Reject input longer than *max_input_chars* before any provider work."""
    if len(text) > max_input_chars:
        raise InputTooLongError(max_chars=max_input_chars, actual_chars=len(text))


async def _attempt(request: InvocationRequest, provider: Provider) -> InvocationResult:
    """Run one provider call under the configured timeout."""
    timeout_s = request.provider.timeout_s
    deadline = asyncio.timeout(timeout_s)
    try:
        async with deadline:
            return await provider.complete(request.prompt, request.params)
    except TimeoutError as e:
        if not deadline.expired():
            raise
        raise InvocationTimeoutError(
            f"{provider.name} did not respond within {timeout_s:g}s",
            hint="Raise llm.timeout_s or try a faster model.",
            retryable=False,
            provider=provider.name,
            phase="complete",
        ) from e


async def execute_invocation(
    request: InvocationRequest,
    provider: Provider,
    *,
    max_input_chars: int,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ExecutionTrace:
    """Execute *request* against *provider* with validation, timeout and retry.

    Args:
        request: Rendered prompt, raw input text and parameters.
        provider: The provider variant selected for this run.
        max_input_chars: Upper bound on ``request.input_text`` length.
        policy: Retry policy; defaults to the provider config's retry budget.
        sleep: Awaitable used between attempts (injectable for tests).

    Returns:
        ExecutionTrace holding the InvocationResult and attempt bookkeeping.

    Raises:
        InputTooLongError: Input exceeds the limit; the provider is not called.
        RephraserError: The last observed error once retries are exhausted or
            a non-retryable error occurs.
    """
    start = time.perf_counter()
    validate_input(request.input_text, max_input_chars)

    if policy is None:
        policy = RetryPolicy.from_provider(request.provider)
    state = RetryState()

    while True:
        state.attempts += 1
        logger.debug(
            "Attempt %d/%d provider=%s model=%s",
            state.attempts,
            policy.max_attempts,
            provider.name,
            request.provider.model,
        )
        try:
            result = await _attempt(request, provider)
        except asyncio.CancelledError:
            raise
        except RephraserError as e:
            err = e
        except Exception as e:
            err = wrap_provider_error(
                e,
                provider=provider.name,
                credential_source=request.provider.credential_source,
            )
            err.__cause__ = e
        else:
            duration_s = time.perf_counter() - start
            logger.debug(
                "Completed in %.3fs after %d attempt(s)", duration_s, state.attempts
            )
            return ExecutionTrace(
                result=result,
                attempts=state.attempts,
                delays_s=tuple(state.delays_s),
                duration_s=duration_s,
            )

        state.last_error = err
        if not should_retry(err) or state.attempts >= policy.max_attempts:
            logger.debug(
                "Giving up after %d attempt(s): %s (%s)",
                state.attempts,
                err,
                err.kind.value,
            )
            raise err

        delay = next_delay(policy, state, err)
        state.delays_s.append(delay)
        logger.warning(
            "%s failed with %s; retry %d/%d in %.2fs",
            provider.name,
            err.kind.value,
            state.retries,
            policy.max_retries,
            delay,
        )
        if delay > 0:
            await sleep(delay)
