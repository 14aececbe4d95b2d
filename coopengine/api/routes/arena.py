"""Arena match routes."""

import asyncio
import logging

from flask import Blueprint, jsonify, request

from coopengine.core.errors import InvalidInputError, RecordNotFoundError
from coopengine.providers.registry import get_chatbot
from coopengine.services import export
from coopengine.storage.base import ArenaMatch

from ..context import download, export_format, get_services
from ..middleware.rate_limiter import limit_listing, limit_run_submit, limit_status
from ..schemas import ArenaMatchCreate, parse_body

logger = logging.getLogger(__name__)

bp = Blueprint("arena", __name__)


@bp.route("/matches", methods=["GET"])
@limit_listing()
def list_matches():
    matches = asyncio.run(get_services().storage.list_matches())
    return jsonify([m.to_dict() for m in matches])


@bp.route("/matches", methods=["POST"])
@limit_run_submit()
def create_match():
    """
    Create an arena match and play it in the background.

    Request body:
        {
            "player1Id": "openai-gpt4o",
            "player2Id": "anthropic-sonnet",
            "gameType": "prisoners-dilemma",
            "totalRounds": 10,
            "temptationPayoff": 5,
            "hiddenLength": false
        }

    Returns:
        201: The match record
        400: Invalid body, or unknown or disabled player
    """
    services = get_services()
    body = parse_body(ArenaMatchCreate, request.get_json(silent=True))

    for field, chatbot_id in (("player1Id", body.player1_id), ("player2Id", body.player2_id)):
        chatbot = get_chatbot(chatbot_id, services.config.provider)
        if chatbot is None:
            raise InvalidInputError(field, f"unknown chatbot '{chatbot_id}'")
        if not chatbot.enabled:
            raise InvalidInputError(field, f"chatbot '{chatbot_id}' is not available")

    match = ArenaMatch(
        player1_id=body.player1_id,
        player2_id=body.player2_id,
        game_type=body.game_type,
        total_rounds=body.total_rounds,
        temptation_payoff=body.temptation_payoff,
        hidden_length=body.hidden_length,
    )
    asyncio.run(services.storage.create_match(match))
    logger.info("Arena match %s: %s vs %s", match.id, match.player1_id, match.player2_id)

    services.runner.submit(services.arena.play(match), name=f"match-{match.id}")
    return jsonify(match.to_dict()), 201


@bp.route("/matches/export", methods=["GET"])
def export_matches():
    """Download every match as CSV or JSON (?format=)."""
    fmt = export_format()
    services = get_services()
    matches = asyncio.run(services.storage.list_matches())

    if fmt == "csv":
        body = export.matches_to_csv(matches, services.config.provider)
    else:
        body = export.matches_to_json(matches, services.config.provider)
    return download(body, export.export_filename("arena-matches", fmt), fmt)


@bp.route("/matches/<match_id>", methods=["GET"])
@limit_status()
def get_match(match_id: str):
    match = asyncio.run(get_services().storage.get_match(match_id))
    if match is None:
        raise RecordNotFoundError("Match", match_id)
    return jsonify(match.to_dict())


@bp.route("/matches/<match_id>", methods=["DELETE"])
def delete_match(match_id: str):
    asyncio.run(get_services().storage.delete_match(match_id))
    return "", 204
