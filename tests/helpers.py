"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off provider and backend classes as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from rephraser.config import GenerationParameters
from rephraser.providers.models import InvocationResult


@dataclass
class ScriptedProvider:
    """Provider double that returns a scripted sequence of results/exceptions.

    Strings become ``InvocationResult(text=...)``. Once the script runs out,
    every call returns ``"ok"``.
    """

    script: list[str | InvocationResult | BaseException] = field(default_factory=list)
    name: str = "scripted"
    calls: int = 0
    prompts: list[str] = field(default_factory=list)
    closed: bool = False

    async def complete(
        self, prompt: str, params: GenerationParameters
    ) -> InvocationResult:
        _ = params
        self.calls += 1
        self.prompts.append(prompt)
        if not self.script:
            return InvocationResult(text="ok", usage={"total_tokens": 1})
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, InvocationResult):
            return item
        return InvocationResult(text=item, usage={"total_tokens": 1})

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class SlowProvider:
    """Provider double that blocks until cancelled (for timeout tests)."""

    name: str = "slow"
    calls: int = 0
    cancelled: bool = False
    closed: bool = False

    async def complete(
        self, prompt: str, params: GenerationParameters
    ) -> InvocationResult:
        _ = prompt, params
        self.calls += 1
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return InvocationResult(text="never")

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class RecordingBackend:
    """Delivery backend that records what it was asked to deliver."""

    clipboard: list[str] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)

    def set_clipboard(self, text: str) -> None:
        self.clipboard.append(text)

    def run_script(self, script: str) -> None:
        self.scripts.append(script)


@dataclass
class FailingBackend:
    """Delivery backend whose primitives always raise *error*."""

    error: Exception = field(default_factory=lambda: RuntimeError("no display"))

    def set_clipboard(self, text: str) -> None:
        _ = text
        raise self.error

    def run_script(self, script: str) -> None:
        _ = script
        raise self.error


@dataclass
class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays without waiting."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def unescape_applescript_string(literal: str) -> str:
    """Decode the body of a double-quoted AppleScript literal.

    Raises ValueError if an unescaped quote would terminate the literal early.
    """
    out: list[str] = []
    chars = iter(literal)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, None)
            if nxt is None:
                raise ValueError("dangling backslash")
            out.append(nxt)
        elif ch == '"':
            raise ValueError("literal terminated early")
        else:
            out.append(ch)
    return "".join(out)


def make_params(**extra: Any) -> GenerationParameters:
    return GenerationParameters(extra=extra)
