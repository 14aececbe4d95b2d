"""Core building blocks shared by every layer."""

from .errors import (
    CoopEngineError,
    ProviderError,
    StorageError,
    ValidationError,
)

__all__ = ["CoopEngineError", "ProviderError", "StorageError", "ValidationError"]
