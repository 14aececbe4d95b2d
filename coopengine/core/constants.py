"""Central constants for Cooperation Engine.

Limits and tunables used across providers, the dispatcher and the API.
The rate limits can be overridden via COOPENGINE_* environment variables
by calling load_constants().

Environment Variables:
    COOPENGINE_RATE_LIMIT_RUN_SUBMIT - Run/match submission limit (default: 10 per minute)
    COOPENGINE_RATE_LIMIT_STATUS - Polling endpoints limit (default: 120 per minute)
    COOPENGINE_RATE_LIMIT_LISTING - Listing endpoints limit (default: 60 per minute)
"""

import os

from coopengine.core.errors import InvalidConfigError

# =============================================================================
# Provider Request Limits
# =============================================================================

OPENAI_MAX_COMPLETION_TOKENS: int = 2048
ANTHROPIC_MAX_TOKENS: int = 2048
XAI_MAX_TOKENS: int = 2048
OPENROUTER_MAX_TOKENS: int = 4096

XAI_BASE_URL: str = "https://api.x.ai/v1"
OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"

# Separator placed between joined system instructions and the first message
# for providers without a native system role.
SYSTEM_PREFIX_SEPARATOR: str = "\n\n---\n\n"

# Default per-request timeout (seconds)
DEFAULT_REQUEST_TIMEOUT: float = 120.0

# =============================================================================
# Arena Defaults
# =============================================================================

ARENA_DEFAULT_GAME: str = "prisoners-dilemma"
ARENA_DEFAULT_ROUNDS: int = 10
ARENA_MAX_ROUNDS: int = 100
ARENA_DEFAULT_TEMPTATION: int = 5

# =============================================================================
# Extraction
# =============================================================================

# Session titles that trigger survival-kit extraction into the toolkit
TOOLKIT_TEMPLATE_MARKERS = ("design your apocalypse", "apocalypse ai")

# Total kit budget recorded on every extracted toolkit item
TOOLKIT_KIT_WEIGHT: str = "70kg total"

# =============================================================================
# API Rate Limits
# =============================================================================

RATE_LIMIT_DEFAULTS = ["2000 per day", "500 per hour"]
RATE_LIMIT_RUN_SUBMIT: str = "10 per minute"
RATE_LIMIT_STATUS: str = "120 per minute"
RATE_LIMIT_LISTING: str = "60 per minute"


def _get_env_str(key: str, default: str) -> str:
    """Get a non-empty string from the environment.

    Raises:
        InvalidConfigError: If the variable is set but blank
    """
    value = os.getenv(key)
    if value is None:
        return default
    if not value.strip():
        raise InvalidConfigError(key, value, "must not be empty")
    return value


def load_constants() -> None:
    """Apply environment overrides to the module-level rate limits."""
    global RATE_LIMIT_RUN_SUBMIT, RATE_LIMIT_STATUS, RATE_LIMIT_LISTING

    RATE_LIMIT_RUN_SUBMIT = _get_env_str("COOPENGINE_RATE_LIMIT_RUN_SUBMIT", "10 per minute")
    RATE_LIMIT_STATUS = _get_env_str("COOPENGINE_RATE_LIMIT_STATUS", "120 per minute")
    RATE_LIMIT_LISTING = _get_env_str("COOPENGINE_RATE_LIMIT_LISTING", "60 per minute")
