"""Tests for the OpenAI-compatible providers (OpenAI, xAI, OpenRouter)."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from coopengine.core.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from coopengine.providers import ChatMessage, GrokProvider, OpenAIProvider, OpenRouterProvider, create_provider
from coopengine.providers.openai_provider import translate_openai_error

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def make_completion(content):
    completion = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    completion.choices = [choice]
    return completion


def mock_client(provider, result=None, side_effect=None):
    provider.client = MagicMock()
    provider.client.chat.completions.create = AsyncMock(return_value=result, side_effect=side_effect)
    return provider.client.chat.completions.create


class TestOpenAIProvider:
    """Test OpenAI provider."""

    def test_missing_key_raises(self):
        with pytest.raises(ProviderNotConfiguredError) as exc_info:
            OpenAIProvider(api_key=None)
        assert exc_info.value.message == "OPENAI_API_KEY not configured"

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIProvider().client is not None

    @pytest.mark.asyncio
    async def test_complete_sends_full_history(self):
        provider = OpenAIProvider(api_key="sk-test")
        create = mock_client(provider, make_completion("Hello there"))

        messages = [
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="Hi"),
        ]
        reply = await provider.complete("gpt-4o", messages)

        assert reply == "Hello there"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hi"},
        ]
        assert kwargs["max_completion_tokens"] == 2048
        assert "max_tokens" not in kwargs

    @pytest.mark.asyncio
    async def test_empty_content_becomes_empty_string(self):
        provider = OpenAIProvider(api_key="sk-test")
        mock_client(provider, make_completion(None))
        assert await provider.complete("gpt-4o", [ChatMessage("user", "Hi")]) == ""

    @pytest.mark.asyncio
    async def test_no_choices(self):
        provider = OpenAIProvider(api_key="sk-test")
        completion = MagicMock()
        completion.choices = []
        mock_client(provider, completion)
        assert await provider.complete("gpt-4o", [ChatMessage("user", "Hi")]) == ""

    @pytest.mark.asyncio
    async def test_sdk_error_translated(self):
        provider = OpenAIProvider(api_key="sk-test")
        mock_client(provider, side_effect=openai.APITimeoutError(request=_REQUEST))
        with pytest.raises(ProviderTimeoutError):
            await provider.complete("gpt-4o", [ChatMessage("user", "Hi")])


class TestCompatibleProviders:
    def test_grok_requires_xai_key(self):
        with pytest.raises(ProviderNotConfiguredError) as exc_info:
            GrokProvider()
        assert exc_info.value.message == "XAI_API_KEY not configured"

    @pytest.mark.asyncio
    async def test_grok_uses_max_tokens(self):
        provider = GrokProvider(api_key="xai-test")
        create = mock_client(provider, make_completion("COOPERATE"))
        await provider.complete("grok-3", [ChatMessage("user", "Move?")])
        assert create.call_args.kwargs["max_tokens"] == 2048
        assert "max_completion_tokens" not in create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_openrouter_uses_larger_budget(self):
        provider = OpenRouterProvider(api_key="or-test")
        create = mock_client(provider, make_completion("ok"))
        await provider.complete("deepseek/deepseek-chat", [ChatMessage("user", "Hi")])
        assert create.call_args.kwargs["max_tokens"] == 4096

    def test_grok_defaults_base_url(self):
        provider = GrokProvider(api_key="xai-test")
        assert str(provider.client.base_url).startswith("https://api.x.ai/v1")

    def test_factory(self):
        assert isinstance(create_provider("openai", api_key="k"), OpenAIProvider)
        assert isinstance(create_provider("xai", api_key="k"), GrokProvider)
        assert isinstance(create_provider("openrouter", api_key="k"), OpenRouterProvider)
        with pytest.raises(ValueError):
            create_provider("azure", api_key="k")


class TestErrorTranslation:
    def test_rate_limit_with_retry_after(self):
        response = httpx.Response(429, headers={"retry-after": "12"}, request=_REQUEST)
        exc = openai.RateLimitError("slow down", response=response, body=None)
        error = translate_openai_error("openai", "OPENAI_API_KEY", exc, 60)
        assert isinstance(error, ProviderRateLimitError)
        assert error.details["retry_after"] == 12

    def test_auth(self):
        response = httpx.Response(401, request=_REQUEST)
        exc = openai.AuthenticationError("bad key", response=response, body=None)
        error = translate_openai_error("xai", "XAI_API_KEY", exc, 60)
        assert isinstance(error, ProviderAuthError)
        assert "XAI_API_KEY" in error.message

    def test_server_error(self):
        response = httpx.Response(503, request=_REQUEST)
        exc = openai.InternalServerError("down", response=response, body=None)
        error = translate_openai_error("openai", "OPENAI_API_KEY", exc, 60)
        assert isinstance(error, ProviderUnavailableError)
        assert error.details["status_code"] == 503

    def test_client_error_falls_through(self):
        response = httpx.Response(400, request=_REQUEST)
        exc = openai.BadRequestError("bad model", response=response, body=None)
        error = translate_openai_error("openai", "OPENAI_API_KEY", exc, 60)
        assert type(error) is ProviderError
        assert error.provider == "openai"
