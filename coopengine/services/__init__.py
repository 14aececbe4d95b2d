"""Application services: dispatch, arena play, extraction and exports."""

from .arena import ArenaOrchestrator
from .background import InlineRunner, ThreadRunner
from .dispatcher import RunDispatcher

__all__ = ["ArenaOrchestrator", "InlineRunner", "RunDispatcher", "ThreadRunner"]
