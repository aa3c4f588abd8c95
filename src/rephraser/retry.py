"""Bounded retry with explicit state.

Design goals:
- Explicit state (policy + attempt counters), no recursion
- Retry decisions from error kinds, never from message text
- Delays never shrink between attempts
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rephraser.errors import ProviderError, RephraserError

if TYPE_CHECKING:
    from rephraser.config import ProviderConfig


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with capped exponential backoff."""

    #: Additional attempts after the first; total attempts = max_retries + 1.
    max_retries: int = 2
    initial_delay_s: float = 0.5
    backoff_multiplier: float = 2.0
    max_delay_s: float = 8.0

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_retries < 0:
            raise ValueError("RetryPolicy.max_retries must be >= 0")
        if self.initial_delay_s < 0:
            raise ValueError("RetryPolicy.initial_delay_s must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("RetryPolicy.backoff_multiplier must be >= 1")
        if self.max_delay_s < 0:
            raise ValueError("RetryPolicy.max_delay_s must be >= 0")

    @classmethod
    def from_provider(cls, provider: ProviderConfig) -> RetryPolicy:
        """Default backoff with the retry budget from the provider config."""
        return cls(max_retries=provider.max_retries)

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first."""
        return self.max_retries + 1

    def backoff_delay(self, retry_index: int) -> float:
        """Base delay before retry *retry_index* (1 for the first retry)."""
        base = self.initial_delay_s * (
            self.backoff_multiplier ** max(0, retry_index - 1)
        )
        return max(0.0, min(self.max_delay_s, base))


@dataclass
class RetryState:
    """Mutable bookkeeping for one invocation's attempts."""

    attempts: int = 0
    delays_s: list[float] = field(default_factory=list)
    last_error: RephraserError | None = None

    @property
    def retries(self) -> int:
        """Retries performed so far."""
        return len(self.delays_s)

    @property
    def total_delay_s(self) -> float:
        """Time spent sleeping between attempts."""
        return sum(self.delays_s)


def should_retry(exc: BaseException) -> bool:
    """Return True when *exc* is a transient failure.

    Contract:
    - Cancellation is never retried.
    - Only RATE_LIMITED and TRANSPORT kinds are retried; auth, response,
      timeout and input errors are structural.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, RephraserError):
        return exc.kind.is_transient
    return False


def next_delay(policy: RetryPolicy, state: RetryState, exc: BaseException) -> float:
    """Delay before the next attempt, honouring Retry-After and monotonicity."""
    delay = policy.backoff_delay(state.retries + 1)
    if isinstance(exc, ProviderError) and exc.retry_after_s is not None:
        delay = max(delay, min(policy.max_delay_s, exc.retry_after_s))
    if state.delays_s:
        delay = max(delay, state.delays_s[-1])
    return delay
