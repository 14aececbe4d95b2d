"""Cooperation benchmark route."""

import asyncio

from flask import Blueprint, jsonify

from coopengine.services.benchmark import cooperation_scores

from ..context import get_services
from ..middleware.rate_limiter import limit_listing

bp = Blueprint("benchmark", __name__)


@bp.route("/cooperation", methods=["GET"])
@limit_listing()
def cooperation():
    """Per-chatbot cooperate/defect tallies over completed runs."""
    services = get_services()
    runs = asyncio.run(services.storage.list_runs())
    return jsonify([s.to_dict() for s in cooperation_scores(runs, services.config.provider)])
