"""Benchmark proposal routes."""

import asyncio
import logging

from flask import Blueprint, jsonify, request

from coopengine.core.errors import RecordNotFoundError
from coopengine.storage.base import BenchmarkProposal, ProposalStatus

from ..context import get_services
from ..middleware.rate_limiter import limit_listing, limit_run_submit
from ..schemas import ProposalCreate, ProposalStatusUpdate, parse_body

logger = logging.getLogger(__name__)

bp = Blueprint("proposals", __name__)


@bp.route("", methods=["GET"])
@limit_listing()
def list_proposals():
    proposals = asyncio.run(get_services().storage.list_proposals())
    return jsonify([p.to_dict() for p in proposals])


@bp.route("", methods=["POST"])
@limit_run_submit()
def create_proposal():
    """
    Submit a benchmark proposal.

    Returns:
        201: The stored proposal, status "pending"
        400: Field validation failed
    """
    body = parse_body(ProposalCreate, request.get_json(silent=True))
    proposal = BenchmarkProposal(**body.model_dump())
    asyncio.run(get_services().storage.create_proposal(proposal))
    logger.info("Benchmark proposal %s submitted", proposal.id)
    return jsonify(proposal.to_dict()), 201


@bp.route("/<proposal_id>/status", methods=["PATCH"])
def update_status(proposal_id: str):
    body = parse_body(ProposalStatusUpdate, request.get_json(silent=True))
    proposal = asyncio.run(get_services().storage.update_proposal_status(
        proposal_id, ProposalStatus(body.status)
    ))
    if proposal is None:
        raise RecordNotFoundError("Proposal", proposal_id)
    return jsonify(proposal.to_dict())
