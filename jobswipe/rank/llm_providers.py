"""
LLM provider abstractions.

This module is the single completion boundary used by the ranker:
``complete(messages, json_mode) -> text``.  The ranker knows nothing
about provider wire formats; it hands over an `AIConfig` and a list of
chat messages.

Supported providers:

* ``openai``, ``groq``, ``deepseek`` and ``claude`` speak the OpenAI chat
  completions protocol and go through ``openai.AsyncOpenAI`` with the
  provider's base URL.
* ``gemini`` goes through the ``google.ai.generativelanguage`` async
  client, one client per provider; chat messages are flattened into a
  single ``role: content`` prompt.

Before every call the config is passed through `resolve_config`, which
re-routes requests whose model name clearly belongs to another provider
(e.g. ``deepseek-chat`` configured under ``gemini``) to that provider's
default endpoint.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Dict, List, Optional

import google.ai.generativelanguage as glm  # type: ignore
import openai
from openai import AsyncOpenAI

from ..config import AIConfig
from ..errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

Message = Dict[str, str]

DEFAULT_MODELS: Dict[str, str] = {
    "openai": "gpt-4o",
    "claude": "claude-3-5-sonnet-20240620",
    "groq": "llama3-70b-8192",
    "gemini": "gemini-1.5-flash",
    "deepseek": "deepseek-chat",
}

DEFAULT_BASE_URLS: Dict[str, Optional[str]] = {
    "openai": "https://api.openai.com/v1",
    "claude": "https://api.anthropic.com/v1/",
    "groq": "https://api.groq.com/openai/v1",
    "gemini": None,  # handled by the SDK
    "deepseek": "https://api.deepseek.com/v1",
}

OPENAI_COMPATIBLE = frozenset({"openai", "groq", "deepseek", "claude"})
# Providers accepting response_format={"type": "json_object"}
JSON_MODE_PROVIDERS = frozenset({"openai", "groq", "deepseek"})

# Substring of a model name -> provider that serves it.  First match wins.
MODEL_HINTS = (
    ("deepseek", "deepseek"),
    ("claude", "claude"),
    ("gemini", "gemini"),
    ("gpt-", "openai"),
)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def complete(self, messages: List[Message], json_mode: bool = False) -> str:
        """Return the model's reply to ``messages``.

        Args:
            messages: Chat messages with ``role`` and ``content`` keys.
            json_mode: Ask the provider for a JSON object reply.

        Raises:
            ProviderError: If the call fails or returns no text.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the provider."""


class OpenAICompatibleProvider(LLMProvider):
    """Provider for endpoints speaking the OpenAI chat completions API."""

    def __init__(self, config: AIConfig) -> None:
        self.provider = config.provider
        self.model = config.model or DEFAULT_MODELS[config.provider]
        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url or DEFAULT_BASE_URLS[config.provider],
        )

    async def complete(self, messages: List[Message], json_mode: bool = False) -> str:
        kwargs: Dict[str, object] = {}
        if json_mode and self.provider in JSON_MODE_PROVIDERS:
            kwargs["response_format"] = {"type": "json_object"}
        logger.debug("Sending %d messages to %s (%s)", len(messages), self.provider, self.model)
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **kwargs,
            )
        except openai.OpenAIError as exc:
            raise ProviderError(f"{self.provider} completion failed: {exc}") from exc
        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ProviderError(f"{self.provider} returned an empty completion")
        return content

    async def aclose(self) -> None:
        await self.client.close()


class GeminiProvider(LLMProvider):
    """Provider that uses Google Generative AI (Gemini).

    Each provider owns a ``GenerativeServiceAsyncClient`` built with its
    own API key.  ``genai.configure`` is process-wide, so two configs
    with different keys would overwrite each other's credentials.
    """

    def __init__(self, config: AIConfig) -> None:
        self.model_name = config.model or DEFAULT_MODELS["gemini"]
        self.api_key = config.api_key
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = glm.GenerativeServiceAsyncClient(client_options={"api_key": self.api_key})
        return self._client

    async def complete(self, messages: List[Message], json_mode: bool = False) -> str:
        prompt = "\n".join(f"{m['role']}: {m['content']}" for m in messages)
        model = self.model_name if self.model_name.startswith("models/") else f"models/{self.model_name}"
        request: Dict[str, object] = {
            "model": model,
            "contents": [glm.Content(role="user", parts=[glm.Part(text=prompt)])],
        }
        if json_mode:
            request["generation_config"] = glm.GenerationConfig(response_mime_type="application/json")
        logger.debug("Sending prompt to Gemini (%s): %s", self.model_name, prompt[:200])
        try:
            response = await self.client.generate_content(glm.GenerateContentRequest(**request))
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(f"Gemini completion failed: {exc}") from exc
        candidates = list(response.candidates)
        content = "".join(part.text for part in candidates[0].content.parts) if candidates else ""
        if not content:
            raise ProviderError("Gemini returned an empty completion")
        return content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.transport.close()


def resolve_config(config: AIConfig) -> AIConfig:
    """Route a config to the provider its model name belongs to.

    If the model name names a different provider than the configured
    one, a copy is returned pointing at that provider's default base
    URL.  Otherwise ``config`` itself is returned.
    """
    model = (config.model or "").lower()
    for hint, provider in MODEL_HINTS:
        if hint not in model:
            continue
        if provider != config.provider:
            logger.warning(
                "Provider is %s but model is %s; routing the request to %s",
                config.provider,
                config.model,
                provider,
            )
            return replace(config, provider=provider, base_url=DEFAULT_BASE_URLS[provider])
        break
    return config


def validate_config(config: AIConfig) -> None:
    """Raise `ConfigurationError` if ``config`` cannot be used for a call."""
    if not config.api_key:
        raise ConfigurationError("AI provider not configured: an API key is required")
    if config.provider not in DEFAULT_MODELS:
        raise ConfigurationError(f"Unsupported AI provider '{config.provider}'")


def get_provider(config: AIConfig) -> LLMProvider:
    """Return an `LLMProvider` for an already resolved config."""
    validate_config(config)
    if config.provider in OPENAI_COMPATIBLE:
        return OpenAICompatibleProvider(config)
    return GeminiProvider(config)


ProviderFactory = Callable[[AIConfig], LLMProvider]


async def complete(
    config: AIConfig,
    messages: List[Message],
    json_mode: bool = False,
    *,
    provider_factory: ProviderFactory = get_provider,
) -> str:
    """Send ``messages`` to the configured provider and return the reply text."""
    resolved = resolve_config(config)
    provider = provider_factory(resolved)
    try:
        return await provider.complete(messages, json_mode=json_mode)
    finally:
        await provider.aclose()
