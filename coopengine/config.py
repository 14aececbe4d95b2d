"""Configuration management for Cooperation Engine."""

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coopengine.core.constants import DEFAULT_REQUEST_TIMEOUT, OPENROUTER_BASE_URL, XAI_BASE_URL
from coopengine.core.errors import InvalidConfigError

# Load .env file
load_dotenv()


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "yes")


def _get_env_int(key: str, default: int) -> int:
    """Get an integer from the environment.

    Raises:
        InvalidConfigError: If the value is not an integer
    """
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidConfigError(key, value, "must be an integer")


def _get_env_float(key: str, default: float) -> float:
    """Get a positive number from the environment.

    Raises:
        InvalidConfigError: If the value is not a positive number
    """
    value = os.getenv(key)
    if value is None:
        return default
    try:
        result = float(value)
    except ValueError:
        raise InvalidConfigError(key, value, "must be a number")
    if result <= 0:
        raise InvalidConfigError(key, value, "must be positive")
    return result


class ProviderConfig(BaseModel):
    """Credentials and endpoints for every chatbot provider."""

    model_config = ConfigDict(validate_default=True)

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_base_url: Optional[str] = Field(default=None, description="Custom OpenAI base URL")

    # Anthropic
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_base_url: Optional[str] = Field(default=None, description="Custom Anthropic base URL")

    # Google Gemini
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API key")
    gemini_base_url: Optional[str] = Field(default=None, description="Custom Gemini base URL")

    # xAI
    xai_api_key: Optional[str] = Field(default=None, description="xAI API key")
    xai_base_url: str = Field(default=XAI_BASE_URL, description="xAI endpoint")

    # OpenRouter
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API key")
    openrouter_base_url: str = Field(default=OPENROUTER_BASE_URL, description="OpenRouter endpoint")

    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, description="Per-request timeout (seconds)")

    @model_validator(mode="after")
    def fill_keys_from_env(self) -> "ProviderConfig":
        """Fall back to the conventional environment variables for missing keys."""
        if not self.openai_api_key:
            self.openai_api_key = os.getenv("OPENAI_API_KEY")
        if not self.anthropic_api_key:
            self.anthropic_api_key = os.getenv("ANTHROPIC_API_KEY")
        if not self.gemini_api_key:
            self.gemini_api_key = os.getenv("GEMINI_API_KEY")
        if not self.xai_api_key:
            self.xai_api_key = os.getenv("XAI_API_KEY")
        if not self.openrouter_api_key:
            self.openrouter_api_key = os.getenv("OPENROUTER_API_KEY")
        return self

    def has_key(self, provider: str) -> bool:
        """Whether an API key is configured for the given provider name."""
        return bool(getattr(self, f"{provider}_api_key", None))


class StorageConfig(BaseModel):
    """Configuration for the SQLite store."""

    db_path: str = Field(default="data/coopengine.db", description="Path to SQLite database")


class ServerConfig(BaseModel):
    """Configuration for the HTTP API server."""

    model_config = ConfigDict(validate_default=True)

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=5000, description="Bind port")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins",
    )
    rate_limit_enabled: bool = Field(default=True, description="Enable per-client rate limits")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: Any) -> List[str]:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v


class AppConfig(BaseModel):
    """Main application configuration."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Load configuration from environment variables.

        Environment variable mapping:
        - OPENAI_API_KEY / OPENAI_BASE_URL
        - ANTHROPIC_API_KEY / ANTHROPIC_BASE_URL
        - GEMINI_API_KEY / GEMINI_BASE_URL
        - XAI_API_KEY
        - OPENROUTER_API_KEY / OPENROUTER_BASE_URL
        - COOPENGINE_DB_PATH: SQLite database path
        - COOPENGINE_HOST / COOPENGINE_PORT / COOPENGINE_CORS_ORIGINS
        - COOPENGINE_RATE_LIMIT_ENABLED: true or false
        - COOPENGINE_REQUEST_TIMEOUT: seconds per provider call
        - COOPENGINE_DEBUG / COOPENGINE_LOG_LEVEL

        Raises:
            InvalidConfigError: If a numeric variable cannot be parsed
        """
        provider = ProviderConfig(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_base_url=os.getenv("GEMINI_BASE_URL"),
            xai_api_key=os.getenv("XAI_API_KEY"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY"),
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", OPENROUTER_BASE_URL),
            request_timeout=_get_env_float("COOPENGINE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        )

        storage = StorageConfig(
            db_path=os.getenv("COOPENGINE_DB_PATH", "data/coopengine.db"),
        )

        server_kwargs: Dict[str, Any] = {
            "host": os.getenv("COOPENGINE_HOST", "0.0.0.0"),
            "port": _get_env_int("COOPENGINE_PORT", 5000),
            "rate_limit_enabled": _env_bool("COOPENGINE_RATE_LIMIT_ENABLED", "true"),
        }
        if os.getenv("COOPENGINE_CORS_ORIGINS"):
            server_kwargs["cors_origins"] = os.getenv("COOPENGINE_CORS_ORIGINS")
        server = ServerConfig(**server_kwargs)

        return cls(
            provider=provider,
            storage=storage,
            server=server,
            debug=_env_bool("COOPENGINE_DEBUG"),
            log_level=os.getenv("COOPENGINE_LOG_LEVEL", "INFO"),
        )


def load_config() -> Dict:
    """
    Load configuration as a simple dictionary.

    Returns:
        Dictionary with configuration values (keys reported as booleans)
    """
    config = AppConfig.from_env()

    return {
        "db_path": config.storage.db_path,
        "host": config.server.host,
        "port": config.server.port,
        "cors_origins": config.server.cors_origins,
        "rate_limit_enabled": config.server.rate_limit_enabled,
        "debug": config.debug,
        "log_level": config.log_level,
        "providers": {
            name: config.provider.has_key(name)
            for name in ("openai", "anthropic", "gemini", "xai", "openrouter")
        },
    }
