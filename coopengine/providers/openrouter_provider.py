"""OpenRouter provider implementation (DeepSeek, Llama and others via one key)."""

from typing import Any, Dict, Optional

from coopengine.core.constants import DEFAULT_REQUEST_TIMEOUT, OPENROUTER_BASE_URL, OPENROUTER_MAX_TOKENS

from .openai_provider import OpenAIProvider


class OpenRouterProvider(OpenAIProvider):
    name = "openrouter"
    key_name = "OPENROUTER_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        super().__init__(api_key=api_key, base_url=base_url or OPENROUTER_BASE_URL, timeout=timeout)

    def _token_params(self) -> Dict[str, Any]:
        return {"max_tokens": OPENROUTER_MAX_TOKENS}
