"""
Anthropic Claude provider.

The Messages API takes system instructions as a separate parameter, so
system turns are pulled out of the history and joined with blank lines.
"""

import logging
import os
from typing import List, Optional

import anthropic
from anthropic import AsyncAnthropic

from coopengine.core.constants import ANTHROPIC_MAX_TOKENS, DEFAULT_REQUEST_TIMEOUT
from coopengine.core.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

from .base import ChatMessage, ChatProvider, split_system

logger = logging.getLogger(__name__)


class AnthropicProvider(ChatProvider):
    """Anthropic Claude provider using the async Messages API."""

    name = "anthropic"
    key_name = "ANTHROPIC_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            base_url: Custom endpoint, None for the vendor default
            timeout: Per-request timeout in seconds
        """
        api_key = api_key or os.getenv(self.key_name)
        if not api_key:
            raise ProviderNotConfiguredError(self.name, self.key_name)

        self.timeout = timeout
        self.client = AsyncAnthropic(api_key=api_key, base_url=base_url, timeout=timeout)

    async def complete(self, model: str, messages: List[ChatMessage]) -> str:
        system, conversation = split_system(messages)

        kwargs = {
            "model": model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "messages": [m.to_dict() for m in conversation],
        }
        if system:
            kwargs["system"] = "\n\n".join(system)

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            raise ProviderTimeoutError(self.name, self.timeout) from e
        except anthropic.RateLimitError as e:
            raise ProviderRateLimitError(self.name) from e
        except anthropic.AuthenticationError as e:
            raise ProviderAuthError(self.name, self.key_name) from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                raise ProviderUnavailableError(self.name, e.status_code) from e
            raise ProviderError(str(e), provider=self.name) from e
        except anthropic.APIConnectionError as e:
            raise ProviderUnavailableError(self.name, reason=str(e)) from e
        except anthropic.AnthropicError as e:
            logger.debug("anthropic call to %s failed: %s", model, e)
            raise ProviderError(str(e), provider=self.name) from e

        if not response.content:
            return ""
        block = response.content[0]
        return block.text if block.type == "text" else ""
