"""Tests for provider routing and the completion boundary."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from jobswipe.config import AIConfig
from jobswipe.errors import ConfigurationError, ProviderError
from jobswipe.rank import llm_providers
from jobswipe.rank.llm_providers import (
    GeminiProvider,
    OpenAICompatibleProvider,
    complete,
    get_provider,
    resolve_config,
)

from conftest import FakeProviderFactory

MESSAGES = [{"role": "system", "content": "Be terse."}, {"role": "user", "content": "Title: Lecturer"}]


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.mark.parametrize(
    "provider, model, expected_provider",
    [
        ("gemini", "deepseek-chat", "deepseek"),
        ("openai", "claude-3-5-sonnet-20240620", "claude"),
        ("deepseek", "gemini-1.5-flash", "gemini"),
        ("groq", "gpt-4o-mini", "openai"),
    ],
)
def test_resolve_config_reroutes_mismatched_models(provider, model, expected_provider) -> None:
    config = AIConfig(provider=provider, api_key="k", base_url="https://custom.example/v1", model=model)
    resolved = resolve_config(config)
    assert resolved.provider == expected_provider
    assert resolved.base_url == llm_providers.DEFAULT_BASE_URLS[expected_provider]
    assert (resolved.api_key, resolved.model) == ("k", model)


@pytest.mark.parametrize(
    "config",
    [
        AIConfig(provider="deepseek", api_key="k", model="deepseek-reasoner"),
        AIConfig(provider="groq", api_key="k", model="llama3-70b-8192"),
        AIConfig(provider="openai", api_key="k"),
    ],
)
def test_resolve_config_keeps_consistent_configs(config) -> None:
    assert resolve_config(config) is config


def test_get_provider_requires_key() -> None:
    with pytest.raises(ConfigurationError):
        get_provider(AIConfig(provider="openai", api_key=""))


def test_get_provider_rejects_unknown_provider() -> None:
    with pytest.raises(ConfigurationError):
        get_provider(AIConfig(provider="mistral", api_key="k"))


@pytest.mark.parametrize("provider", ["openai", "groq", "deepseek", "claude"])
def test_openai_compatible_providers_use_default_endpoint(provider) -> None:
    instance = get_provider(AIConfig(provider=provider, api_key="k"))
    assert isinstance(instance, OpenAICompatibleProvider)
    assert instance.model == llm_providers.DEFAULT_MODELS[provider]
    assert str(instance.client.base_url).rstrip("/") == llm_providers.DEFAULT_BASE_URLS[provider].rstrip("/")


def test_openai_compatible_requests_json_mode() -> None:
    provider = OpenAICompatibleProvider(AIConfig(provider="groq", api_key="k"))
    create = AsyncMock(return_value=_completion('{"score": 1}'))
    provider.client = MagicMock()
    provider.client.chat.completions.create = create

    assert asyncio.run(provider.complete(MESSAGES, json_mode=True)) == '{"score": 1}'
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "llama3-70b-8192"
    assert kwargs["messages"] == MESSAGES
    assert kwargs["response_format"] == {"type": "json_object"}


def test_claude_is_not_sent_response_format() -> None:
    provider = OpenAICompatibleProvider(AIConfig(provider="claude", api_key="k"))
    create = AsyncMock(return_value=_completion("{}"))
    provider.client = MagicMock()
    provider.client.chat.completions.create = create

    asyncio.run(provider.complete(MESSAGES, json_mode=True))
    assert "response_format" not in create.call_args.kwargs


def test_openai_compatible_empty_completion_raises() -> None:
    provider = OpenAICompatibleProvider(AIConfig(provider="openai", api_key="k"))
    provider.client = MagicMock()
    provider.client.chat.completions.create = AsyncMock(return_value=_completion(None))
    with pytest.raises(ProviderError):
        asyncio.run(provider.complete(MESSAGES))


def test_openai_sdk_errors_become_provider_errors() -> None:
    provider = OpenAICompatibleProvider(AIConfig(provider="openai", api_key="k"))
    provider.client = MagicMock()
    provider.client.chat.completions.create = AsyncMock(side_effect=llm_providers.openai.OpenAIError("bad key"))
    with pytest.raises(ProviderError, match="bad key"):
        asyncio.run(provider.complete(MESSAGES))


def _fake_glm(monkeypatch, reply=None, error=None):
    """Stand in for the Gemini client library; one mock client per construction."""
    fake_glm = MagicMock()

    def make_client(client_options):
        client = MagicMock()
        client.client_options = client_options
        client.generate_content = AsyncMock(return_value=reply, side_effect=error)
        client.transport.close = AsyncMock()
        return client

    fake_glm.GenerativeServiceAsyncClient.side_effect = make_client
    monkeypatch.setattr(llm_providers, "glm", fake_glm)
    return fake_glm


def _gemini_reply(*chunks):
    parts = [SimpleNamespace(text=chunk) for chunk in chunks]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def test_gemini_flattens_messages(monkeypatch) -> None:
    fake_glm = _fake_glm(monkeypatch, reply=_gemini_reply('{"score"', ": 5}"))

    provider = GeminiProvider(AIConfig(provider="gemini", api_key="g-key"))
    assert asyncio.run(provider.complete(MESSAGES, json_mode=True)) == '{"score": 5}'

    fake_glm.Part.assert_called_once_with(text="system: Be terse.\nuser: Title: Lecturer")
    fake_glm.GenerationConfig.assert_called_once_with(response_mime_type="application/json")
    request = fake_glm.GenerateContentRequest.call_args.kwargs
    assert request["model"] == "models/gemini-1.5-flash"
    provider.client.generate_content.assert_awaited_once_with(fake_glm.GenerateContentRequest.return_value)


def test_gemini_without_json_mode_sends_no_generation_config(monkeypatch) -> None:
    fake_glm = _fake_glm(monkeypatch, reply=_gemini_reply("plain"))
    provider = GeminiProvider(AIConfig(provider="gemini", api_key="g", model="models/gemini-1.5-pro"))
    assert asyncio.run(provider.complete(MESSAGES)) == "plain"
    fake_glm.GenerationConfig.assert_not_called()
    assert "generation_config" not in fake_glm.GenerateContentRequest.call_args.kwargs
    assert fake_glm.GenerateContentRequest.call_args.kwargs["model"] == "models/gemini-1.5-pro"


def test_gemini_providers_keep_their_own_keys(monkeypatch) -> None:
    _fake_glm(monkeypatch, reply=_gemini_reply("{}"))
    first = GeminiProvider(AIConfig(provider="gemini", api_key="key-one"))
    second = GeminiProvider(AIConfig(provider="gemini", api_key="key-two"))

    async def run() -> None:
        await asyncio.gather(first.complete(MESSAGES), second.complete(MESSAGES))
        await first.aclose()
        await second.aclose()

    asyncio.run(run())
    assert first.client.client_options == {"api_key": "key-one"}
    assert second.client.client_options == {"api_key": "key-two"}
    first.client.transport.close.assert_awaited_once()
    second.client.transport.close.assert_awaited_once()


def test_gemini_failure_becomes_provider_error(monkeypatch) -> None:
    _fake_glm(monkeypatch, error=RuntimeError("quota"))
    with pytest.raises(ProviderError, match="quota"):
        asyncio.run(GeminiProvider(AIConfig(provider="gemini", api_key="g")).complete(MESSAGES))


def test_gemini_empty_reply_raises(monkeypatch) -> None:
    _fake_glm(monkeypatch, reply=SimpleNamespace(candidates=[]))
    with pytest.raises(ProviderError, match="empty"):
        asyncio.run(GeminiProvider(AIConfig(provider="gemini", api_key="g")).complete(MESSAGES))


def test_complete_resolves_and_closes() -> None:
    factory = FakeProviderFactory({"Lecturer": "reply"})
    config = AIConfig(provider="openai", api_key="k", model="deepseek-chat")
    assert asyncio.run(complete(config, MESSAGES, provider_factory=factory)) == "reply"
    assert factory.configs[0].provider == "deepseek"
    assert factory.closed == ["closed"]


def test_complete_closes_provider_on_error() -> None:
    factory = FakeProviderFactory({"Lecturer": ProviderError("down")})
    with pytest.raises(ProviderError):
        asyncio.run(complete(AIConfig(provider="openai", api_key="k"), MESSAGES, provider_factory=factory))
    assert factory.closed == ["closed"]
