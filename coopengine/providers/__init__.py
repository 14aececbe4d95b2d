"""Chatbot provider clients."""

from typing import Literal

from .anthropic_provider import AnthropicProvider
from .base import ChatMessage, ChatProvider
from .gemini_provider import GeminiProvider
from .grok_provider import GrokProvider
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider

ProviderType = Literal["openai", "anthropic", "gemini", "xai", "openrouter"]


def create_provider(provider_type: ProviderType, **kwargs) -> ChatProvider:
    """
    Factory function to create the appropriate provider instance.

    Args:
        provider_type: "openai", "anthropic", "gemini", "xai" or "openrouter"
        **kwargs: Provider-specific configuration (api_key, base_url, timeout)

    Returns:
        Initialized provider instance

    Raises:
        ValueError: If provider_type is not supported
        ProviderNotConfiguredError: If the provider has no API key
    """
    if provider_type == "openai":
        return OpenAIProvider(**kwargs)
    elif provider_type == "anthropic":
        return AnthropicProvider(**kwargs)
    elif provider_type == "gemini":
        return GeminiProvider(**kwargs)
    elif provider_type == "xai":
        return GrokProvider(**kwargs)
    elif provider_type == "openrouter":
        return OpenRouterProvider(**kwargs)
    else:
        raise ValueError(f"Unsupported provider type: {provider_type}")


__all__ = [
    "ChatMessage",
    "ChatProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "GrokProvider",
    "OpenRouterProvider",
    "create_provider",
    "ProviderType",
]
