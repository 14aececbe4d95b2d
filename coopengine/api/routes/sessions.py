"""Session CRUD, run submission and results routes."""

import asyncio
import logging

from flask import Blueprint, jsonify, request

from coopengine.core.errors import RecordNotFoundError
from coopengine.services import export
from coopengine.storage.base import PromptStep, Session

from ..context import download, export_format, get_services
from ..middleware.rate_limiter import limit_listing, limit_run_submit, limit_status
from ..schemas import RunCreate, SessionCreate, SessionUpdate, parse_body

logger = logging.getLogger(__name__)

bp = Blueprint("sessions", __name__)


def _load_session(session_id: str) -> Session:
    session = asyncio.run(get_services().storage.get_session(session_id))
    if session is None:
        raise RecordNotFoundError("Session", session_id)
    return session


def _to_steps(prompts) -> list:
    return [PromptStep(id=p.id, order=p.order, role=p.role, content=p.content) for p in prompts]


@bp.route("", methods=["GET"])
@limit_listing()
def list_sessions():
    """List sessions, newest first."""
    sessions = asyncio.run(get_services().storage.list_sessions())
    return jsonify([s.to_dict() for s in sessions])


@bp.route("", methods=["POST"])
def create_session():
    """
    Create a session.

    Request body:
        {"title": "...", "prompts": [{"id", "order", "role", "content"}]}

    Returns:
        201: Created session
        400: Invalid body
    """
    body = parse_body(SessionCreate, request.get_json(silent=True))
    session = Session(title=body.title, prompts=_to_steps(body.prompts))
    asyncio.run(get_services().storage.create_session(session))
    logger.info("Created session %s (%d prompts)", session.id, len(session.prompts))
    return jsonify(session.to_dict()), 201


@bp.route("/<session_id>", methods=["GET"])
@limit_status()
def get_session(session_id: str):
    return jsonify(_load_session(session_id).to_dict())


@bp.route("/<session_id>", methods=["PUT"])
def update_session(session_id: str):
    """Partially update title and/or prompts."""
    body = parse_body(SessionUpdate, request.get_json(silent=True))
    session = asyncio.run(get_services().storage.update_session(
        session_id,
        title=body.title,
        prompts=_to_steps(body.prompts) if body.prompts is not None else None,
    ))
    if session is None:
        raise RecordNotFoundError("Session", session_id)
    return jsonify(session.to_dict())


@bp.route("/<session_id>", methods=["DELETE"])
def delete_session(session_id: str):
    """Delete a session and its runs."""
    asyncio.run(get_services().storage.delete_session(session_id))
    return "", 204


@bp.route("/<session_id>/run", methods=["POST"])
@limit_run_submit()
def run_session(session_id: str):
    """
    Start a run of the session against the selected chatbots.

    Request body:
        {"chatbotIds": ["openai-gpt4o", ...]}

    Returns:
        201: The run record; chatbots are called in the background
        400: No chatbots selected
        404: Session not found
    """
    services = get_services()
    session = _load_session(session_id)
    body = parse_body(RunCreate, request.get_json(silent=True))

    run = asyncio.run(services.dispatcher.start_run(session, body.chatbot_ids))
    services.runner.submit(services.dispatcher.execute(run, session), name=f"run-{run.id}")

    return jsonify(run.to_dict()), 201


@bp.route("/<session_id>/results", methods=["GET"])
@limit_status()
def session_results(session_id: str):
    """
    Results grid data for a session.

    Returns:
        200: {session, runs (newest first), roundLabels}
    """
    session = _load_session(session_id)
    runs = asyncio.run(get_services().storage.list_runs(session_id=session_id))
    return jsonify({
        "session": session.to_dict(),
        "runs": [r.to_dict() for r in runs],
        "roundLabels": export.round_labels(session),
    })


@bp.route("/<session_id>/export", methods=["GET"])
def export_session(session_id: str):
    """Download every run of the session as CSV or JSON (?format=)."""
    fmt = export_format()
    services = get_services()
    session = _load_session(session_id)
    runs = asyncio.run(services.storage.list_runs(session_id=session_id))

    if fmt == "csv":
        body = export.results_to_csv(session, runs, services.config.provider)
    else:
        body = export.results_to_json(session, runs)
    return download(body, export.export_filename(session.title, fmt), fmt)
