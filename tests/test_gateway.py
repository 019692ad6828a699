"""Text generation gateway: provider order, fallback, timeouts and health."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from vhouse_ai.config.settings import GenerationConfig, OpenAIConfig
from vhouse_ai.domain.models import AIProvider
from vhouse_ai.pipelines.conversation.types import GenerationRequest
from vhouse_ai.services.generation_gateway import TextGenerationService
from vhouse_ai.services.llm_client import (
    BedrockLlmClient,
    LlmInvocationError,
    OpenAIChatClient,
    ProviderCompletion,
)


class ScriptedClient:
    def __init__(self, provider, outcomes, *, configured=True, delay=0.0):
        self.provider = provider
        self.outcomes = list(outcomes)
        self.configured = configured
        self.delay = delay
        self.calls = 0

    @property
    def model_id(self):
        return f"{self.provider.value}-model"

    @property
    def is_configured(self):
        return self.configured

    async def complete(self, request):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        return ProviderCompletion(text=outcome, model=self.model_id, tokens_used=10)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _request(preferred=AIProvider.CLAUDE):
    return GenerationRequest(prompt="Hola", max_tokens=100, temperature=0.5, preferred_provider=preferred)


def _config(**overrides):
    values = {"timeout_seconds": 1.0, "health_cooldown_seconds": 60.0, "default_provider": "claude"}
    values.update(overrides)
    return GenerationConfig(**values)


def test_preferred_provider_answers():
    claude = ScriptedClient(AIProvider.CLAUDE, ["Respuesta de Claude"])
    openai = ScriptedClient(AIProvider.OPENAI, ["Respuesta de OpenAI"])
    gateway = TextGenerationService([claude, openai], config=_config())

    result = asyncio.run(gateway.generate(_request()))

    assert result.is_successful
    assert result.content == "Respuesta de Claude"
    assert result.used_provider is AIProvider.CLAUDE
    assert result.tokens_used == 10
    assert openai.calls == 0


def test_falls_back_to_second_provider_and_remembers_failure():
    clock = FakeClock()
    claude = ScriptedClient(AIProvider.CLAUDE, [LlmInvocationError("throttled"), "Claude otra vez"])
    openai = ScriptedClient(AIProvider.OPENAI, ["Respaldo", "Respaldo 2"])
    gateway = TextGenerationService([claude, openai], config=_config(), clock=clock)

    first = asyncio.run(gateway.generate(_request()))
    assert first.is_successful
    assert first.used_provider is AIProvider.OPENAI
    assert gateway.health_status()["recommended_provider"] == "openai"

    # Within the cooldown Claude is tried last, so OpenAI answers directly.
    second = asyncio.run(gateway.generate(_request()))
    assert second.content == "Respaldo 2"
    assert claude.calls == 1

    clock.now += 61
    third = asyncio.run(gateway.generate(_request()))
    assert third.used_provider is AIProvider.CLAUDE
    assert third.content == "Claude otra vez"


def test_all_providers_failing_returns_unsuccessful_result():
    claude = ScriptedClient(AIProvider.CLAUDE, [LlmInvocationError("rate limited")])
    openai = ScriptedClient(AIProvider.OPENAI, [""])
    gateway = TextGenerationService([claude, openai], config=_config())

    result = asyncio.run(gateway.generate(_request()))

    assert not result.is_successful
    assert result.content == ""
    assert "claude: rate limited" in result.error_message
    assert "openai: respuesta vacía" in result.error_message
    assert result.used_provider is AIProvider.OPENAI


def test_slow_provider_times_out():
    claude = ScriptedClient(AIProvider.CLAUDE, ["tarde"], delay=0.5)
    gateway = TextGenerationService([claude], config=_config(timeout_seconds=0.05))

    result = asyncio.run(gateway.generate(_request()))

    assert not result.is_successful
    assert "sin respuesta tras 0.05s" in result.error_message


def test_unconfigured_provider_is_skipped():
    claude = ScriptedClient(AIProvider.CLAUDE, [], configured=False)
    openai = ScriptedClient(AIProvider.OPENAI, ["ok desde openai"])
    gateway = TextGenerationService([claude, openai], config=_config())

    result = asyncio.run(gateway.generate(_request()))

    assert result.used_provider is AIProvider.OPENAI
    assert claude.calls == 0
    status = gateway.health_status()
    assert status["service_status"] == {"claude": False, "openai": True}
    assert status["fallback_available"] is False


def test_no_providers_at_all():
    result = asyncio.run(TextGenerationService([], config=_config()).generate(_request()))

    assert not result.is_successful
    assert result.error_message == "No hay proveedores de generación configurados"
    assert result.used_provider is None


def test_preference_for_openai_is_honoured():
    claude = ScriptedClient(AIProvider.CLAUDE, ["claude"])
    openai = ScriptedClient(AIProvider.OPENAI, ["openai"])
    gateway = TextGenerationService([claude, openai], config=_config())

    result = asyncio.run(gateway.generate(_request(AIProvider.OPENAI)))

    assert result.used_provider is AIProvider.OPENAI
    assert claude.calls == 0


def test_openai_client_posts_chat_completion():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "model": "gpt-4o-mini",
                "choices": [{"message": {"content": " Hola desde OpenAI "}}],
                "usage": {"total_tokens": 33},
            },
        )

    client = OpenAIChatClient(
        OpenAIConfig(api_key="sk-test", base_url="https://api.example.com/v1"),
        transport=httpx.MockTransport(handler),
    )
    request = GenerationRequest(prompt="Hola", max_tokens=50, temperature=0.2, system_message="Eres VHouse")

    completion = asyncio.run(client.complete(request))

    assert completion.text == "Hola desde OpenAI"
    assert completion.tokens_used == 33
    assert seen["url"] == "https://api.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "Eres VHouse"}
    assert seen["body"]["max_tokens"] == 50


def test_openai_http_error_becomes_invocation_error():
    client = OpenAIChatClient(
        OpenAIConfig(api_key="sk-test"),
        transport=httpx.MockTransport(lambda request: httpx.Response(429, text="rate limited")),
    )

    with pytest.raises(LlmInvocationError, match="429"):
        asyncio.run(client.complete(_request()))


def test_openai_without_key_is_not_configured():
    assert not OpenAIChatClient(OpenAIConfig(api_key=None)).is_configured


def test_bedrock_client_uses_converse_response():
    class FakeBedrock:
        def __init__(self):
            self.kwargs = None

        def converse(self, **kwargs):
            self.kwargs = kwargs
            return {
                "output": {"message": {"content": [{"text": "Hola"}, {"text": "equipo"}]}},
                "usage": {"totalTokens": 21},
            }

    fake = FakeBedrock()
    client = BedrockLlmClient(client=fake)
    request = GenerationRequest(prompt="Hola", max_tokens=100, temperature=0.3, system_message="Eres VHouse")

    completion = asyncio.run(client.complete(request))

    assert completion.text == "Hola\nequipo"
    assert completion.tokens_used == 21
    assert fake.kwargs["system"] == [{"text": "Eres VHouse"}]
    assert fake.kwargs["inferenceConfig"]["maxTokens"] == 100


def test_configured_default_provider_applies_without_caller_preference():
    claude = ScriptedClient(AIProvider.CLAUDE, ["claude"])
    openai = ScriptedClient(AIProvider.OPENAI, ["openai"])
    gateway = TextGenerationService([claude, openai], config=_config(default_provider="openai"))

    result = asyncio.run(gateway.generate(_request(None)))

    assert result.used_provider is AIProvider.OPENAI
    assert claude.calls == 0


def test_openai_non_text_content_becomes_invocation_error():
    client = OpenAIChatClient(
        OpenAIConfig(api_key="sk-test"),
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": ["x"]}}]})
        ),
    )

    with pytest.raises(LlmInvocationError, match="formato inesperado"):
        asyncio.run(client.complete(_request()))


def test_openai_odd_usage_block_is_ignored():
    client = OpenAIChatClient(
        OpenAIConfig(api_key="sk-test"),
        transport=httpx.MockTransport(
            lambda request: httpx.Response(
                200,
                json={"choices": [{"message": {"content": "Hola"}}], "usage": ["raro"], "model": 5},
            )
        ),
    )

    completion = asyncio.run(client.complete(_request()))

    assert completion.text == "Hola"
    assert completion.tokens_used == 0
    assert completion.model == "gpt-4o-mini"


def test_malformed_openai_answer_falls_back_to_next_provider():
    openai = OpenAIChatClient(
        OpenAIConfig(api_key="sk-test"),
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": {"a": 1}}}]})
        ),
    )
    claude = ScriptedClient(AIProvider.CLAUDE, ["Respaldo de Claude"])
    gateway = TextGenerationService([openai, claude], config=_config(default_provider="openai"))

    result = asyncio.run(gateway.generate(_request(None)))

    assert result.is_successful
    assert result.used_provider is AIProvider.CLAUDE
    assert gateway.health_status()["service_status"]["openai"] is False


def test_unexpected_provider_error_does_not_escape_gateway():
    claude = ScriptedClient(AIProvider.CLAUDE, [KeyError("choices")])
    gateway = TextGenerationService([claude], config=_config())

    result = asyncio.run(gateway.generate(_request()))

    assert not result.is_successful
    assert "claude: error inesperado (KeyError)" in result.error_message
    assert result.used_provider is AIProvider.CLAUDE
