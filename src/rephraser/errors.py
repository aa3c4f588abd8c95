"""Exception hierarchy for Rephraser.

Every failure surfaced by the pipeline is a ``RephraserError`` carrying an
``ErrorKind`` tag, a message, and an optional hint for the user.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterator


class ErrorKind(str, Enum):
    """Stable tags for the failure taxonomy."""

    ACTION_NOT_FOUND = "action_not_found"
    TEMPLATE = "template"
    INPUT_TOO_LONG = "input_too_long"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"
    RESPONSE = "response"
    TIMEOUT = "timeout"
    OUTPUT_DISPATCH = "output_dispatch"
    CONFIG = "config"
    INTERNAL = "internal"

    @property
    def is_transient(self) -> bool:
        """Whether failures of this kind are worth retrying."""
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.TRANSPORT)


class RephraserError(Exception):
    """Base exception for all Rephraser errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    @property
    def message(self) -> str:
        """The human-readable message, without the hint."""
        return self.args[0] if self.args else ""


class ConfigurationError(RephraserError):
    """Configuration validation or resolution failed."""

    kind = ErrorKind.CONFIG


class InternalError(RephraserError):
    """A Rephraser internal error (bug) or invariant violation."""

    kind = ErrorKind.INTERNAL


class ActionNotFoundError(RephraserError):
    """No action is registered under the requested name."""

    kind = ErrorKind.ACTION_NOT_FOUND

    def __init__(self, name: str, *, hint: str | None = None) -> None:
        super().__init__(f"Action {name!r} not found", hint=hint)
        self.name = name


class TemplateError(RephraserError):
    """A prompt template could not be rendered."""

    kind = ErrorKind.TEMPLATE


class InputTooLongError(RephraserError):
    """Input text exceeds the configured maximum length."""

    kind = ErrorKind.INPUT_TOO_LONG

    def __init__(self, *, max_chars: int, actual_chars: int) -> None:
        super().__init__(
            f"Input too long (max {max_chars} characters, got {actual_chars})",
            hint="Shorten the text or raise limits.max_input_chars.",
        )
        self.max_chars = max_chars
        self.actual_chars = actual_chars


class OutputDispatchError(RephraserError):
    """Generated text could not be delivered to the configured sink."""

    kind = ErrorKind.OUTPUT_DISPATCH


class ProviderError(RephraserError):
    """A provider call failed.

    Providers attach retry metadata so the pipeline can retry transient
    failures without brittle substring matching.
    """

    kind = ErrorKind.RESPONSE

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.provider = provider
        self.phase = phase


class AuthError(ProviderError):
    """Credentials are missing or were rejected by the provider."""

    kind = ErrorKind.AUTH


class RateLimitError(ProviderError):
    """Rate limit exceeded (HTTP 429)."""

    kind = ErrorKind.RATE_LIMITED


class TransportError(ProviderError):
    """Network failure or provider-side 5xx."""

    kind = ErrorKind.TRANSPORT


class ResponseError(ProviderError):
    """The provider answered with a payload we could not use."""

    kind = ErrorKind.RESPONSE


class InvocationTimeoutError(ProviderError):
    """The provider call exceeded the configured timeout."""

    kind = ErrorKind.TIMEOUT


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
