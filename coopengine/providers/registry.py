"""Chatbot catalog.

Static descriptors of the provider/model pairings available to query. The
xAI and OpenRouter entries are only enabled when their keys are configured.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from coopengine.config import ProviderConfig


@dataclass
class Chatbot:
    """Descriptor for one provider/model pairing."""
    id: str
    provider: str  # openai | anthropic | gemini | xai | openrouter
    display_name: str
    model: str
    description: str
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "displayName": self.display_name,
            "model": self.model,
            "description": self.description,
            "enabled": self.enabled,
        }


def list_chatbots(provider_config: Optional[ProviderConfig] = None) -> List[Chatbot]:
    """Return the catalog, with key-dependent entries enabled per config."""
    provider_config = provider_config or ProviderConfig()

    return [
        Chatbot(
            id="openai-gpt5",
            provider="openai",
            display_name="GPT-5.1",
            model="gpt-5.1",
            description="OpenAI's most capable model",
        ),
        Chatbot(
            id="openai-gpt4o",
            provider="openai",
            display_name="GPT-4o",
            model="gpt-4o",
            description="Fast multimodal model",
        ),
        Chatbot(
            id="anthropic-sonnet",
            provider="anthropic",
            display_name="Claude Sonnet 4.5",
            model="claude-sonnet-4-5",
            description="Balanced performance and speed",
        ),
        Chatbot(
            id="anthropic-opus",
            provider="anthropic",
            display_name="Claude Opus 4.5",
            model="claude-opus-4-5",
            description="Not available on the current integration",
            enabled=False,
        ),
        Chatbot(
            id="gemini-flash",
            provider="gemini",
            display_name="Gemini 2.5 Flash",
            model="gemini-2.5-flash",
            description="Fast hybrid reasoning model",
        ),
        Chatbot(
            id="gemini-pro",
            provider="gemini",
            display_name="Gemini 2.5 Pro",
            model="gemini-2.5-pro",
            description="Advanced reasoning capabilities",
        ),
        Chatbot(
            id="xai-grok",
            provider="xai",
            display_name="Grok 3",
            model="grok-3",
            description="xAI's Grok model - requires XAI_API_KEY",
            enabled=provider_config.has_key("xai"),
        ),
        Chatbot(
            id="openrouter-deepseek",
            provider="openrouter",
            display_name="DeepSeek V3",
            model="deepseek/deepseek-chat",
            description="DeepSeek via OpenRouter - requires OPENROUTER_API_KEY",
            enabled=provider_config.has_key("openrouter"),
        ),
    ]


def get_chatbot(chatbot_id: str, provider_config: Optional[ProviderConfig] = None) -> Optional[Chatbot]:
    """Look up a catalog entry by id."""
    for chatbot in list_chatbots(provider_config):
        if chatbot.id == chatbot_id:
            return chatbot
    return None


def display_name_for(chatbot_id: str, provider_config: Optional[ProviderConfig] = None) -> str:
    """Catalog display name, or the id itself when unknown."""
    chatbot = get_chatbot(chatbot_id, provider_config)
    return chatbot.display_name if chatbot else chatbot_id
