"""
Flask API for Cooperation Engine.

JSON endpoints under /api/* for sessions, runs, arena matches, the toolkit
catalog, leaderboards, benchmark proposals and the cooperation benchmark.
"""

import logging
from typing import Any, Optional

from flask import Flask
from flask_cors import CORS

from coopengine.config import AppConfig
from coopengine.providers.pool import ProviderPool
from coopengine.services.arena import ArenaOrchestrator
from coopengine.services.background import ThreadRunner
from coopengine.services.dispatcher import RunDispatcher
from coopengine.services.extraction import auto_extract_leaderboard, auto_extract_toolkit
from coopengine.storage import StorageBackend, create_storage

from .context import EXTENSION_KEY, AppServices
from .middleware import init_limiter, register_error_handlers
from .routes import (
    arena_bp,
    benchmark_bp,
    chatbots_bp,
    leaderboard_bp,
    proposals_bp,
    runs_bp,
    sessions_bp,
    toolkit_bp,
)

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    storage: Optional[StorageBackend] = None,
    pool: Optional[ProviderPool] = None,
    runner: Optional[Any] = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Application config (defaults to AppConfig.from_env())
        storage: Storage backend (defaults to SQLite at config.storage.db_path)
        pool: Provider pool (defaults to one built from config.provider)
        runner: Background runner for runs and matches (defaults to ThreadRunner)
    """
    config = config or AppConfig.from_env()
    storage = storage or create_storage("sqlite", db_path=config.storage.db_path)
    pool = pool or ProviderPool(config.provider)

    async def leaderboard_hook(run, session):
        await auto_extract_leaderboard(storage, run, session)

    async def toolkit_hook(run, session):
        await auto_extract_toolkit(storage, run, session, config.provider)

    dispatcher = RunDispatcher(storage, pool, completion_hooks=[leaderboard_hook, toolkit_hook])

    app = Flask(__name__)
    app.config["DEBUG"] = config.debug
    app.json.sort_keys = False

    CORS(app, origins=config.server.cors_origins)
    init_limiter(app, enabled=config.server.rate_limit_enabled)
    register_error_handlers(app)

    app.extensions[EXTENSION_KEY] = AppServices(
        config=config,
        storage=storage,
        pool=pool,
        dispatcher=dispatcher,
        arena=ArenaOrchestrator(storage, pool),
        runner=runner or ThreadRunner(),
    )

    app.register_blueprint(chatbots_bp, url_prefix="/api/chatbots")
    app.register_blueprint(sessions_bp, url_prefix="/api/sessions")
    app.register_blueprint(runs_bp, url_prefix="/api")
    app.register_blueprint(arena_bp, url_prefix="/api/arena")
    app.register_blueprint(toolkit_bp, url_prefix="/api/toolkit")
    app.register_blueprint(leaderboard_bp, url_prefix="/api")
    app.register_blueprint(proposals_bp, url_prefix="/api/benchmark-proposals")
    app.register_blueprint(benchmark_bp, url_prefix="/api/benchmark")

    @app.route("/health")
    def health():
        return {"status": "ok"}

    logger.debug("Application created (db=%s)", config.storage.db_path)
    return app
