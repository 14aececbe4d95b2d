"""Rate limiting middleware for the Flask API.

A single module-level Flask-Limiter instance identifies clients by IP and
keeps counters in memory with a moving window. Per-endpoint limits are read
from coopengine.core.constants at request time so load_constants()
overrides take effect.
"""

import logging

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from coopengine.core import constants

logger = logging.getLogger(__name__)

limiter = Limiter(
    get_remote_address,
    default_limits=constants.RATE_LIMIT_DEFAULTS,
    storage_uri="memory://",
    strategy="moving-window",
)


def init_limiter(app: Flask, enabled: bool = True) -> Limiter:
    """Attach the limiter to an app.

    Args:
        app: Flask application instance
        enabled: False turns every limit off (RATELIMIT_ENABLED)
    """
    app.config["RATELIMIT_ENABLED"] = enabled
    limiter.init_app(app)
    if not enabled:
        logger.info("Rate limiting disabled")
    return limiter


def limit_run_submit():
    """Limit for endpoints that start runs or matches (default: 10/min)."""
    return limiter.limit(lambda: constants.RATE_LIMIT_RUN_SUBMIT)


def limit_status():
    """Limit for polled status endpoints (default: 120/min)."""
    return limiter.limit(lambda: constants.RATE_LIMIT_STATUS)


def limit_listing():
    """Limit for listing endpoints (default: 60/min)."""
    return limiter.limit(lambda: constants.RATE_LIMIT_LISTING)
