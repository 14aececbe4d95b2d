"""Toolkit catalog routes."""

import asyncio

from flask import Blueprint, jsonify, request

from coopengine.core.errors import RecordNotFoundError
from coopengine.storage.base import ToolkitItem

from ..context import get_services
from ..middleware.rate_limiter import limit_listing
from ..schemas import ToolkitItemCreate, parse_body

bp = Blueprint("toolkit", __name__)


@bp.route("", methods=["GET"])
@limit_listing()
def list_items():
    items = asyncio.run(get_services().storage.list_toolkit_items())
    return jsonify([i.to_dict() for i in items])


@bp.route("", methods=["POST"])
def create_item():
    body = parse_body(ToolkitItemCreate, request.get_json(silent=True))
    item = ToolkitItem(**body.model_dump())
    asyncio.run(get_services().storage.create_toolkit_item(item))
    return jsonify(item.to_dict()), 201


@bp.route("/<item_id>", methods=["GET"])
def get_item(item_id: str):
    item = asyncio.run(get_services().storage.get_toolkit_item(item_id))
    if item is None:
        raise RecordNotFoundError("Toolkit item", item_id)
    return jsonify(item.to_dict())


@bp.route("/<item_id>", methods=["DELETE"])
def delete_item(item_id: str):
    asyncio.run(get_services().storage.delete_toolkit_item(item_id))
    return "", 204
