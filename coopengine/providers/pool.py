"""Lazily constructed provider instances shared by the dispatcher and arena."""

import asyncio
import logging
import weakref
from typing import Dict, List, Optional

from coopengine.config import ProviderConfig

from . import create_provider
from .base import ChatMessage, ChatProvider
from .registry import Chatbot

logger = logging.getLogger(__name__)


class ProviderPool:
    """
    Builds one provider client per vendor on first use.

    Construction is deferred so that a missing key only fails the calls that
    need it, and surfaces as an error recorded on that call.

    SDK clients hold connection pools tied to the event loop that opened
    them, so clients are cached per running loop and dropped with it.
    """

    def __init__(self, config: Optional[ProviderConfig] = None):
        self.config = config or ProviderConfig()
        self._by_loop: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
        self._unbound: Dict[str, ChatProvider] = {}

    def _providers(self) -> Dict[str, ChatProvider]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._unbound
        return self._by_loop.setdefault(loop, {})

    def get(self, provider_name: str) -> ChatProvider:
        """Return the provider for a vendor name, creating it if needed."""
        providers = self._providers()
        if provider_name not in providers:
            logger.debug("Creating %s provider", provider_name)
            providers[provider_name] = create_provider(
                provider_name,
                api_key=getattr(self.config, f"{provider_name}_api_key"),
                base_url=getattr(self.config, f"{provider_name}_base_url"),
                timeout=self.config.request_timeout,
            )
        return providers[provider_name]

    async def complete(self, chatbot: Chatbot, messages: List[ChatMessage]) -> str:
        """Call the chatbot's model with the given history."""
        return await self.get(chatbot.provider).complete(chatbot.model, messages)
