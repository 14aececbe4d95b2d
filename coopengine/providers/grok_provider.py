"""xAI Grok provider implementation.

Grok exposes an OpenAI-compatible chat completions API, so the OpenAI SDK
is pointed at the xAI endpoint.
"""

from typing import Any, Dict, Optional

from coopengine.core.constants import DEFAULT_REQUEST_TIMEOUT, XAI_BASE_URL, XAI_MAX_TOKENS

from .openai_provider import OpenAIProvider


class GrokProvider(OpenAIProvider):
    """xAI implementation using chat completions."""

    name = "xai"
    key_name = "XAI_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        super().__init__(api_key=api_key, base_url=base_url or XAI_BASE_URL, timeout=timeout)

    def _token_params(self) -> Dict[str, Any]:
        return {"max_tokens": XAI_MAX_TOKENS}
