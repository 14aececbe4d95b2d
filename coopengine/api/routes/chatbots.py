"""Chatbot catalog route."""

from flask import Blueprint, jsonify

from coopengine.providers.registry import list_chatbots

from ..context import get_services
from ..middleware.rate_limiter import limit_listing

bp = Blueprint("chatbots", __name__)


@bp.route("", methods=["GET"])
@limit_listing()
def get_chatbots():
    """
    List every chatbot descriptor, enabled or not.

    Returns:
        200: [{id, provider, displayName, model, description, enabled}]
    """
    config = get_services().config
    return jsonify([c.to_dict() for c in list_chatbots(config.provider)])
