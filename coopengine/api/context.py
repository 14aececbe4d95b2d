"""Per-app service container and response helpers shared by the blueprints."""

from dataclasses import dataclass
from typing import Any

from flask import Response, current_app, request

from coopengine.config import AppConfig
from coopengine.core.errors import InvalidInputError
from coopengine.providers.pool import ProviderPool
from coopengine.services.arena import ArenaOrchestrator
from coopengine.services.dispatcher import RunDispatcher
from coopengine.storage.base import StorageBackend

EXTENSION_KEY = "coopengine"


@dataclass
class AppServices:
    config: AppConfig
    storage: StorageBackend
    pool: ProviderPool
    dispatcher: RunDispatcher
    arena: ArenaOrchestrator
    runner: Any  # ThreadRunner or InlineRunner


def get_services() -> AppServices:
    return current_app.extensions[EXTENSION_KEY]


def export_format() -> str:
    """The ?format= query value: csv (default) or json."""
    fmt = request.args.get("format", "csv").lower()
    if fmt not in ("csv", "json"):
        raise InvalidInputError("format", "must be 'csv' or 'json'")
    return fmt


def download(body: str, filename: str, fmt: str) -> Response:
    mimetype = "text/csv" if fmt == "csv" else "application/json"
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
