"""API route blueprints."""

from .arena import bp as arena_bp
from .benchmark import bp as benchmark_bp
from .chatbots import bp as chatbots_bp
from .leaderboard import bp as leaderboard_bp
from .proposals import bp as proposals_bp
from .runs import bp as runs_bp
from .sessions import bp as sessions_bp
from .toolkit import bp as toolkit_bp

__all__ = [
    "arena_bp",
    "benchmark_bp",
    "chatbots_bp",
    "leaderboard_bp",
    "proposals_bp",
    "runs_bp",
    "sessions_bp",
    "toolkit_bp",
]
