"""
Google Gemini provider.

Gemini has no system role in a plain content list: system instructions are
joined and prefixed onto the first conversational turn, and the assistant
role is renamed to "model".
"""

import asyncio
import logging
import os
from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from coopengine.core.constants import DEFAULT_REQUEST_TIMEOUT, SYSTEM_PREFIX_SEPARATOR
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


def build_contents(messages: List[ChatMessage]) -> List[types.Content]:
    """Convert a chat history into Gemini content blocks."""
    system, conversation = split_system(messages)
    prefix = "\n\n".join(system) + SYSTEM_PREFIX_SEPARATOR if system else ""

    contents = []
    for i, message in enumerate(conversation):
        text = prefix + message.content if i == 0 and prefix else message.content
        role = "model" if message.role == "assistant" else "user"
        contents.append(types.Content(role=role, parts=[types.Part(text=text)]))
    return contents


class GeminiProvider(ChatProvider):
    """Google Gemini provider using the google-genai async client."""

    name = "gemini"
    key_name = "GEMINI_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        api_key = api_key or os.getenv(self.key_name)
        if not api_key:
            raise ProviderNotConfiguredError(self.name, self.key_name)

        self.timeout = timeout
        # HttpOptions.timeout is in milliseconds
        http_options = types.HttpOptions(base_url=base_url, timeout=int(timeout * 1000))
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    async def complete(self, model: str, messages: List[ChatMessage]) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=build_contents(messages),
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(self.name, self.timeout) from e
        except genai_errors.APIError as e:
            logger.debug("gemini call to %s failed: %s", model, e)
            if e.code == 429:
                raise ProviderRateLimitError(self.name) from e
            if e.code in (401, 403):
                raise ProviderAuthError(self.name, self.key_name) from e
            if e.code and e.code >= 500:
                raise ProviderUnavailableError(self.name, e.code) from e
            raise ProviderError(str(e), provider=self.name) from e

        return response.text or ""
