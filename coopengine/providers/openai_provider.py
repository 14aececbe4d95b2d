"""OpenAI provider implementation (also the base for OpenAI-compatible vendors)."""

import logging
import os
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from coopengine.core.constants import DEFAULT_REQUEST_TIMEOUT, OPENAI_MAX_COMPLETION_TOKENS
from coopengine.core.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

from .base import ChatMessage, ChatProvider

logger = logging.getLogger(__name__)


def translate_openai_error(provider: str, key_name: str, exc: Exception, timeout: float) -> ProviderError:
    """Map an openai SDK exception onto the provider error hierarchy."""
    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(provider, timeout)
    if isinstance(exc, openai.RateLimitError):
        retry_after = exc.response.headers.get("retry-after") if exc.response is not None else None
        return ProviderRateLimitError(provider, int(retry_after) if retry_after and retry_after.isdigit() else None)
    if isinstance(exc, openai.AuthenticationError):
        return ProviderAuthError(provider, key_name)
    if isinstance(exc, openai.APIStatusError) and exc.status_code >= 500:
        return ProviderUnavailableError(provider, exc.status_code)
    if isinstance(exc, openai.APIConnectionError):
        return ProviderUnavailableError(provider, reason=str(exc))
    return ProviderError(str(exc), provider=provider)


class OpenAIProvider(ChatProvider):
    """OpenAI chat completions provider."""

    name = "openai"
    key_name = "OPENAI_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (defaults to the provider's environment variable)
            base_url: Custom endpoint, None for the vendor default
            timeout: Per-request timeout in seconds

        Raises:
            ProviderNotConfiguredError: If no API key is available
        """
        api_key = api_key or os.getenv(self.key_name)
        if not api_key:
            raise ProviderNotConfiguredError(self.name, self.key_name)

        self.timeout = timeout
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def _token_params(self) -> Dict[str, Any]:
        return {"max_completion_tokens": OPENAI_MAX_COMPLETION_TOKENS}

    async def complete(self, model: str, messages: List[ChatMessage]) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[m.to_dict() for m in messages],
                **self._token_params(),
            )
        except openai.OpenAIError as e:
            logger.debug("%s call to %s failed: %s", self.name, model, e)
            raise translate_openai_error(self.name, self.key_name, e, self.timeout) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
