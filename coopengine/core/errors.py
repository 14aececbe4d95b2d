"""Core exception hierarchy for Cooperation Engine.

Every application error inherits from CoopEngineError so callers can catch
the whole family with one clause, and the API layer can turn any of them
into a structured JSON response.

Exception Hierarchy:
    CoopEngineError (base)
    ├── ProviderError - chatbot provider issues
    │   ├── ProviderTimeoutError
    │   ├── ProviderRateLimitError
    │   ├── ProviderAuthError
    │   ├── ProviderUnavailableError
    │   └── ProviderNotConfiguredError
    ├── ConfigurationError - config issues
    │   └── InvalidConfigError
    ├── StorageError - persistence issues
    │   └── RecordNotFoundError
    └── ValidationError - input validation
        ├── InvalidInputError
        └── SchemaValidationError
"""

from typing import Any, Dict, Optional


class CoopEngineError(Exception):
    """Base exception for all Cooperation Engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "PROVIDER_TIMEOUT")
        details: Optional dict with additional context
    """

    error_code: str = "COOPENGINE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dict for API responses."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Provider Errors
class ProviderError(CoopEngineError):
    """Base class for chatbot provider errors."""

    error_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if provider:
            details.setdefault("provider", provider)
        self.provider = provider
        super().__init__(message, error_code=error_code, details=details)


class ProviderTimeoutError(ProviderError):
    """Provider API call timed out."""

    error_code = "PROVIDER_TIMEOUT"

    def __init__(self, provider: str, timeout_seconds: float):
        super().__init__(
            f"{provider} API call timed out after {timeout_seconds}s.",
            provider=provider,
            details={"timeout_seconds": timeout_seconds},
        )


class ProviderRateLimitError(ProviderError):
    """Provider rate limit exceeded."""

    error_code = "PROVIDER_RATE_LIMIT"

    def __init__(self, provider: str, retry_after: Optional[int] = None):
        msg = f"{provider} rate limit exceeded."
        if retry_after:
            msg += f" Retry after {retry_after} seconds."
        super().__init__(msg, provider=provider, details={"retry_after": retry_after})


class ProviderAuthError(ProviderError):
    """Provider authentication failed."""

    error_code = "PROVIDER_AUTH"

    def __init__(self, provider: str, key_name: str = "API_KEY"):
        super().__init__(
            f"{provider} authentication failed. Check your {key_name} environment variable.",
            provider=provider,
            details={"key_name": key_name},
        )


class ProviderUnavailableError(ProviderError):
    """Provider service is unavailable."""

    error_code = "PROVIDER_UNAVAILABLE"

    def __init__(self, provider: str, status_code: Optional[int] = None, reason: str = ""):
        msg = f"{provider} service is currently unavailable."
        if status_code:
            msg += f" (HTTP {status_code})"
        if reason:
            msg += f" {reason}"
        super().__init__(msg, provider=provider, details={"status_code": status_code})


class ProviderNotConfiguredError(ProviderError):
    """Provider has no API key configured."""

    error_code = "PROVIDER_NOT_CONFIGURED"

    def __init__(self, provider: str, key_name: str):
        super().__init__(
            f"{key_name} not configured",
            provider=provider,
            details={"key_name": key_name},
        )


# Configuration Errors
class ConfigurationError(CoopEngineError):
    """Base class for configuration errors."""

    error_code = "CONFIG_ERROR"


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    error_code = "INVALID_CONFIG"

    def __init__(self, config_key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for '{config_key}': {reason}",
            details={"config_key": config_key, "value": str(value), "reason": reason},
        )


# Storage Errors
class StorageError(CoopEngineError):
    """Base class for storage errors."""

    error_code = "STORAGE_ERROR"


class RecordNotFoundError(StorageError):
    """Requested record does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, kind: str, record_id: str):
        super().__init__(
            f"{kind} not found",
            details={"kind": kind, "id": record_id},
        )


# Validation Errors
class ValidationError(CoopEngineError):
    """Base class for validation errors."""

    error_code = "VALIDATION_ERROR"


class InvalidInputError(ValidationError):
    """User input is invalid."""

    error_code = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid input for '{field}': {reason}",
            details={"field": field, "reason": reason},
        )


class SchemaValidationError(ValidationError):
    """Request body does not match the expected schema."""

    error_code = "SCHEMA_VALIDATION"

    def __init__(self, schema_name: str, errors: list):
        super().__init__(
            f"Schema validation failed for '{schema_name}': {', '.join(errors)}",
            details={"schema_name": schema_name, "errors": errors},
        )
