"""Candidate leaderboard and toolkit leaderboard routes."""

import asyncio
import logging

from flask import Blueprint, jsonify, request

from coopengine.core.errors import RecordNotFoundError
from coopengine.services import extraction
from coopengine.storage.base import Outcomes

from ..context import get_services
from ..middleware.rate_limiter import limit_listing
from ..schemas import (
    LeaderboardExtract,
    LeaderboardOutcomesRequest,
    ToolkitOutcomesRequest,
    ToolkitUsage,
    parse_body,
)

logger = logging.getLogger(__name__)

bp = Blueprint("leaderboard", __name__)


def _load_run(run_id: str):
    run = asyncio.run(get_services().storage.get_run(run_id))
    if run is None:
        raise RecordNotFoundError("Run", run_id)
    return run


@bp.route("/leaderboard", methods=["GET"])
@limit_listing()
def list_leaderboard():
    """Entries by selection count, optionally for one ?templateId=."""
    template_id = request.args.get("templateId") or None
    entries = asyncio.run(get_services().storage.list_leaderboard(template_id))
    return jsonify([e.to_dict() for e in entries])


@bp.route("/leaderboard", methods=["DELETE"])
def clear_leaderboard():
    asyncio.run(get_services().storage.clear_leaderboard())
    logger.info("Leaderboard cleared")
    return "", 204


@bp.route("/leaderboard/extract", methods=["POST"])
def extract_leaderboard():
    """
    Tally SAVES selections of a run under a template.

    Request body:
        {"runId": "...", "templateId": "...", "candidateMapping": {"1": "Name"}}

    Returns:
        200: {"extracted": [{"candidate": name, "count": n}]}
    """
    body = parse_body(LeaderboardExtract, request.get_json(silent=True))
    run = _load_run(body.run_id)
    extracted = asyncio.run(extraction.extract_leaderboard(
        get_services().storage, run, body.template_id, body.candidate_mapping
    ))
    return jsonify({"extracted": extracted})


@bp.route("/leaderboard/outcomes", methods=["POST"])
def leaderboard_outcomes():
    """Parse outcome metrics from a run and average them into the template's entries."""
    body = parse_body(LeaderboardOutcomesRequest, request.get_json(silent=True))
    run = _load_run(body.run_id)
    outcomes = asyncio.run(extraction.apply_outcomes(get_services().storage, run, body.template_id))
    return jsonify({"outcomes": outcomes.to_dict()})


@bp.route("/toolkit-leaderboard", methods=["GET"])
@limit_listing()
def list_toolkit_leaderboard():
    entries = asyncio.run(get_services().storage.list_toolkit_leaderboard())
    return jsonify([e.to_dict() for e in entries])


@bp.route("/toolkit-leaderboard/usage", methods=["POST"])
def record_toolkit_usage():
    """Count one use of a toolkit item."""
    body = parse_body(ToolkitUsage, request.get_json(silent=True))
    storage = get_services().storage

    item = asyncio.run(storage.get_toolkit_item(body.toolkit_item_id))
    if item is None:
        raise RecordNotFoundError("Toolkit item", body.toolkit_item_id)

    entry = asyncio.run(storage.upsert_toolkit_usage(item.id, item.name, body.template_id))
    return jsonify(entry.to_dict())


@bp.route("/toolkit-leaderboard/outcomes", methods=["POST"])
def toolkit_outcomes():
    """Average reported outcomes into a tracked toolkit item."""
    body = parse_body(ToolkitOutcomesRequest, request.get_json(silent=True))
    outcomes = Outcomes(**body.outcomes.model_dump())

    entry = asyncio.run(get_services().storage.update_toolkit_outcomes(body.toolkit_item_id, outcomes))
    if entry is None:
        raise RecordNotFoundError("Toolkit leaderboard entry", body.toolkit_item_id)
    return jsonify(entry.to_dict())
