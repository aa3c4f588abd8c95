"""End-to-end runs of ``rephrase()`` with test doubles.

These cover the whole flow: action lookup, rendering, provider selection,
invocation, and delivery. No network calls and no OS delivery primitives.
"""

from __future__ import annotations

import logging

import pytest

import rephraser
from rephraser import (
    ActionDefinition,
    ActionNotFoundError,
    AuthError,
    Config,
    GenerationParameters,
    InputTooLongError,
    OutputConfig,
    OutputDispatchError,
    ProviderConfig,
    RephraseResult,
    RetryPolicy,
    TransportError,
    build_registry,
    list_actions,
    rephrase,
)
from rephraser.providers.models import InvocationResult
from tests.conftest import ANTHROPIC_TEST_MODEL, OPENAI_TEST_MODEL
from tests.helpers import FailingBackend, RecordingBackend, ScriptedProvider

pytestmark = pytest.mark.integration

POLITE = ActionDefinition(
    name="polite",
    display_name="Polite",
    prompt_template="Rewrite politely: {text}",
)


def _config(**overrides) -> Config:
    base = {
        "provider": ProviderConfig(kind="mock", model="mock-model-v1"),
        "output": OutputConfig(method="clipboard"),
        "actions": build_registry([POLITE]),
    }
    base.update(overrides)
    return Config(**base)


@pytest.mark.asyncio
async def test_full_pipeline_flow_end_to_end() -> None:
    backend = RecordingBackend()

    result = await rephrase("polite", "hi", config=_config(), backend=backend)

    assert isinstance(result, RephraseResult)
    assert result.text == "Rewrite politely: hi"
    assert result.action == "polite"
    assert result.method == "clipboard"
    assert backend.clipboard == ["Rewrite politely: hi"]
    assert result.metrics["attempts"] == 1
    assert result.metrics["retry_delays_s"] == []
    assert result.metrics["model"] == "mock-model-v1"
    assert result.usage["total_tokens"] == 6


@pytest.mark.asyncio
async def test_mock_canned_response_is_delivered_as_dialog() -> None:
    backend = RecordingBackend()
    config = _config(
        output=OutputConfig(method="dialog", title="Rephraser"),
        generation=GenerationParameters(extra={"mock_response": 'Say "hello"'}),
    )

    result = await rephrase("polite", "hi", config=config, backend=backend)

    assert result.text == 'Say "hello"'
    assert backend.scripts == [
        'display dialog "Say \\"hello\\"" with title "Rephraser" '
        'buttons {"OK"} default button "OK"'
    ]


@pytest.mark.asyncio
async def test_injected_provider_receives_rendered_prompt_and_is_closed() -> None:
    provider = ScriptedProvider(script=["Good day."])
    backend = RecordingBackend()

    result = await rephrase(
        "polite", "hi", config=_config(), backend=backend, provider=provider
    )

    assert provider.prompts == ["Rewrite politely: hi"]
    assert provider.closed is True
    assert result.text == "Good day."


@pytest.mark.asyncio
async def test_unknown_action_fails_before_provider() -> None:
    provider = ScriptedProvider()

    with pytest.raises(ActionNotFoundError):
        await rephrase(
            "shout", "hi", config=_config(), backend=RecordingBackend(), provider=provider
        )
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_input_too_long_fails_before_provider() -> None:
    provider = ScriptedProvider()
    backend = RecordingBackend()

    with pytest.raises(InputTooLongError):
        await rephrase(
            "polite",
            "x" * 11,
            config=_config(max_input_chars=10),
            backend=backend,
            provider=provider,
        )
    assert provider.calls == 0
    assert backend.clipboard == []


@pytest.mark.asyncio
async def test_missing_credential_is_auth_error_without_network() -> None:
    config = _config(provider=ProviderConfig(kind="openai", model="gpt-4o-mini"))
    backend = RecordingBackend()

    with pytest.raises(AuthError) as exc:
        await rephrase("polite", "hi", config=config, backend=backend)

    assert exc.value.status_code is None
    assert "OPENAI_API_KEY" in str(exc.value)
    assert backend.clipboard == []


@pytest.mark.asyncio
async def test_provider_rejection_is_auth_error_after_one_attempt() -> None:
    provider = ScriptedProvider(
        script=[AuthError("rejected", status_code=401, retryable=False), "ok"]
    )

    with pytest.raises(AuthError) as exc:
        await rephrase(
            "polite", "hi", config=_config(), backend=RecordingBackend(), provider=provider
        )
    assert exc.value.status_code == 401
    assert provider.calls == 1
    assert provider.closed is True


@pytest.mark.asyncio
async def test_transient_failure_is_retried_and_reported() -> None:
    provider = ScriptedProvider(
        script=[TransportError("blip"), InvocationResult(text="done", model="m-1")]
    )
    policy = RetryPolicy(max_retries=2, initial_delay_s=0.0)

    result = await rephrase(
        "polite",
        "hi",
        config=_config(),
        backend=RecordingBackend(),
        provider=provider,
        policy=policy,
    )

    assert result.text == "done"
    assert result.metrics["attempts"] == 2
    assert result.metrics["retry_delays_s"] == [0.0]
    assert result.metrics["model"] == "m-1"


@pytest.mark.asyncio
async def test_dispatch_failure_fails_the_run() -> None:
    provider = ScriptedProvider(script=["generated"])

    with pytest.raises(OutputDispatchError):
        await rephrase(
            "polite",
            "hi",
            config=_config(),
            backend=FailingBackend(),
            provider=provider,
        )
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_provider_cleanup_failure_does_not_mask_result(
    caplog: pytest.LogCaptureFixture,
) -> None:
    class _LeakyProvider(ScriptedProvider):
        async def aclose(self) -> None:
            raise RuntimeError("close failed")

    backend = RecordingBackend()
    with caplog.at_level(logging.WARNING, logger="rephraser"):
        result = await rephrase(
            "polite",
            "hi",
            config=_config(),
            backend=backend,
            provider=_LeakyProvider(script=["fine"]),
        )

    assert result.text == "fine"
    assert backend.clipboard == ["fine"]
    assert any("cleanup failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_config_is_not_mutated_by_a_run() -> None:
    config = _config()
    before = repr(config)

    await rephrase("polite", "hi", config=config, backend=RecordingBackend())
    assert repr(config) == before


def test_list_actions_reflects_overrides() -> None:
    actions = list_actions(_config())
    assert [a.name for a in actions] == ["polite", "organize", "summarize"]
    assert actions[0].prompt_template == "Rewrite politely: {text}"


def test_public_api_exports() -> None:
    for name in rephraser.__all__:
        assert hasattr(rephraser, name), name
    assert isinstance(rephraser.__version__, str)


@pytest.mark.api
@pytest.mark.asyncio
async def test_live_openai_rephrase(openai_api_key: str) -> None:
    _ = openai_api_key
    config = _config(provider=ProviderConfig(kind="openai", model=OPENAI_TEST_MODEL))
    backend = RecordingBackend()

    result = await rephrase("polite", "thanks for the report", config=config, backend=backend)

    assert result.text.strip()
    assert backend.clipboard == [result.text]


@pytest.mark.api
@pytest.mark.asyncio
async def test_live_anthropic_rephrase(anthropic_api_key: str) -> None:
    _ = anthropic_api_key
    config = _config(
        provider=ProviderConfig(kind="anthropic", model=ANTHROPIC_TEST_MODEL)
    )
    backend = RecordingBackend()

    result = await rephrase("polite", "send me the file", config=config, backend=backend)

    assert result.text.strip()
    assert backend.clipboard == [result.text]
