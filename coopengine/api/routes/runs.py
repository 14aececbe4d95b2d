"""Run and history routes."""

import asyncio

from flask import Blueprint, jsonify

from coopengine.core.errors import RecordNotFoundError
from coopengine.services import export

from ..context import download, export_format, get_services
from ..middleware.rate_limiter import limit_listing, limit_status

bp = Blueprint("runs", __name__)


async def _runs_with_sessions(storage):
    runs = await storage.list_runs()
    sessions = {s.id: s for s in await storage.list_sessions()}
    return runs, sessions


@bp.route("/runs", methods=["GET"])
@limit_listing()
def list_runs():
    """All runs, newest first, each with its session embedded (or null)."""
    runs, sessions = asyncio.run(_runs_with_sessions(get_services().storage))
    payload = []
    for run in runs:
        data = run.to_dict()
        session = sessions.get(run.session_id)
        data["session"] = session.to_dict() if session else None
        payload.append(data)
    return jsonify(payload)


@bp.route("/runs/<run_id>", methods=["GET"])
@limit_status()
def get_run(run_id: str):
    run = asyncio.run(get_services().storage.get_run(run_id))
    if run is None:
        raise RecordNotFoundError("Run", run_id)
    return jsonify(run.to_dict())


@bp.route("/runs/<run_id>", methods=["DELETE"])
def delete_run(run_id: str):
    asyncio.run(get_services().storage.delete_run(run_id))
    return "", 204


@bp.route("/runs/<run_id>/export", methods=["GET"])
def export_run(run_id: str):
    """Download a single run as CSV or JSON (?format=)."""
    fmt = export_format()
    services = get_services()
    run = asyncio.run(services.storage.get_run(run_id))
    if run is None:
        raise RecordNotFoundError("Run", run_id)
    session = asyncio.run(services.storage.get_session(run.session_id))
    if session is None:
        raise RecordNotFoundError("Session", run.session_id)

    if fmt == "csv":
        body = export.results_to_csv(session, [run], services.config.provider)
    else:
        body = export.results_to_json(session, [run])
    return download(body, export.export_filename(session.title, fmt), fmt)


@bp.route("/history", methods=["GET"])
@limit_listing()
def history():
    """[{run, session}] for every run whose session still exists."""
    runs, sessions = asyncio.run(_runs_with_sessions(get_services().storage))
    return jsonify([
        {"run": run.to_dict(), "session": sessions[run.session_id].to_dict()}
        for run in runs
        if run.session_id in sessions
    ])
