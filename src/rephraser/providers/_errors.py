"""Shared provider-side error helpers.

Providers map SDK exceptions into the ProviderError family so the pipeline's
retry policy stays provider-agnostic.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from rephraser.errors import (
    AuthError,
    ProviderError,
    RateLimitError,
    ResponseError,
    TransportError,
    _walk_exception_chain,
)

_AUTH_STATUS_CODES: frozenset[int] = frozenset({401, 403})


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def extract_retry_after_s(exc: BaseException) -> float | None:
    """Walk the exception chain to find a retry-after delay in seconds."""
    for e in _walk_exception_chain(exc):
        value = getattr(e, "retry_after", None)
        if isinstance(value, (int, float)) and value >= 0:
            return float(value)

        response = getattr(e, "response", None)
        headers: Any = getattr(response, "headers", None)
        if headers is None:
            continue
        try:
            raw = headers.get("Retry-After")
        except (AttributeError, TypeError):
            raw = None
        if isinstance(raw, str) and raw.strip():
            try:
                seconds = float(raw)
            except ValueError:
                continue
            if seconds >= 0:
                return seconds
    return None


def _is_network_failure(
    exc: BaseException, extra_types: tuple[type[BaseException], ...] = ()
) -> bool:
    network_types = (httpx.RequestError, ConnectionError, *extra_types)
    return any(isinstance(e, network_types) for e in _walk_exception_chain(exc))


def _auth_hint(credential_source: str | None) -> str:
    env_var = credential_source or "the provider API key"
    return f"Check credentials/permissions (the key is read from {env_var})."


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str = "complete",
    message: str | None = None,
    credential_source: str | None = None,
    network_errors: tuple[type[BaseException], ...] = (),
) -> ProviderError:
    """Map provider SDK exceptions into a ProviderError with stable retry metadata.

    | status / cause                     | error            | retryable |
    |------------------------------------|------------------|-----------|
    | 401, 403                           | AuthError        | no        |
    | 429                                | RateLimitError   | yes       |
    | 5xx, connection or httpx failure   | TransportError   | yes       |
    | anything else                      | ResponseError    | no        |

    ``network_errors`` lets a provider name its SDK's connection error types,
    which do not always chain the underlying httpx exception.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, ProviderError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    retry_after_s = extract_retry_after_s(exc)

    err_cls: type[ProviderError] = ResponseError
    retryable = False
    hint: str | None = None
    if status_code in _AUTH_STATUS_CODES:
        err_cls = AuthError
        hint = _auth_hint(credential_source)
    elif status_code == 429:
        err_cls = RateLimitError
        retryable = True
        hint = "The provider is rate limiting requests; try again shortly."
    elif isinstance(status_code, int) and status_code >= 500:
        err_cls = TransportError
        retryable = True
    elif status_code is None and _is_network_failure(exc, network_errors):
        err_cls = TransportError
        retryable = True

    msg = message or f"{provider} {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=hint,
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        provider=provider,
        phase=phase,
    )
