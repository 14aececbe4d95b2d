"""Persistence layer."""

from typing import Literal

from .base import (
    ArenaMatch,
    ArenaRound,
    BenchmarkProposal,
    ChatbotResponse,
    LeaderboardEntry,
    Outcomes,
    PromptStep,
    ProposalStatus,
    Run,
    RunStatus,
    Session,
    StorageBackend,
    ToolkitItem,
    ToolkitLeaderboardEntry,
)
from .sqlite_store import SQLiteStore

StorageType = Literal["sqlite"]


def create_storage(storage_type: StorageType = "sqlite", **kwargs) -> StorageBackend:
    """
    Factory function to create a storage backend.

    Args:
        storage_type: Backend name (only "sqlite" is available)
        **kwargs: Backend-specific configuration (db_path)

    Raises:
        ValueError: If storage_type is not supported
    """
    if storage_type == "sqlite":
        return SQLiteStore(**kwargs)
    raise ValueError(f"Unsupported storage type: {storage_type}")


__all__ = [
    "ArenaMatch",
    "ArenaRound",
    "BenchmarkProposal",
    "ChatbotResponse",
    "LeaderboardEntry",
    "Outcomes",
    "PromptStep",
    "ProposalStatus",
    "Run",
    "RunStatus",
    "Session",
    "StorageBackend",
    "ToolkitItem",
    "ToolkitLeaderboardEntry",
    "SQLiteStore",
    "create_storage",
]
