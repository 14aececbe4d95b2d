"""
Cooperation Engine CLI.

Examples:
    coopengine serve --port 5000
    coopengine chatbots
    coopengine run <session-id> -c openai-gpt4o -c anthropic-sonnet
    coopengine export <session-id> --format json -o results.json
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from coopengine import __version__
from coopengine.config import AppConfig
from coopengine.core.constants import load_constants
from coopengine.core.errors import CoopEngineError
from coopengine.providers.pool import ProviderPool
from coopengine.providers.registry import list_chatbots
from coopengine.services import export as export_service
from coopengine.services.dispatcher import RunDispatcher
from coopengine.services.extraction import auto_extract_leaderboard, auto_extract_toolkit
from coopengine.storage import create_storage

from .async_runner import run_async_command

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@click.group()
@click.version_option(version=__version__, prog_name="coopengine")
def cli():
    """Cooperation Engine - multi-chatbot prompt runs and cooperation games."""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind host (default: COOPENGINE_HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Bind port (default: COOPENGINE_PORT or 5000)")
@click.option("--debug", is_flag=True, help="Run Flask in debug mode")
def serve(host: Optional[str], port: Optional[int], debug: bool):
    """Start the HTTP API server."""
    from coopengine.api import create_app

    config = AppConfig.from_env()
    _setup_logging(config.log_level)
    load_constants()

    app = create_app(config)
    bind_host = host or config.server.host
    bind_port = port or config.server.port
    logger.info("Serving on %s:%d (db=%s)", bind_host, bind_port, config.storage.db_path)
    app.run(host=bind_host, port=bind_port, debug=debug or config.debug)


@cli.command()
def chatbots():
    """List the chatbot catalog and which entries are enabled."""
    config = AppConfig.from_env()
    for chatbot in list_chatbots(config.provider):
        marker = "+" if chatbot.enabled else "-"
        key_note = "" if config.provider.has_key(chatbot.provider) else " (no key)"
        click.echo(f"[{marker}] {chatbot.id:<22} {chatbot.display_name} [{chatbot.model}]{key_note}")


@cli.command()
@click.argument("session_id")
@click.option("--chatbot", "-c", "chatbot_ids", multiple=True, required=True, help="Chatbot id (repeatable)")
def run(session_id: str, chatbot_ids: Tuple[str, ...]):
    """Run a saved session against chatbots and wait for it to finish.

    Examples:
        coopengine run 3f2a... -c openai-gpt4o -c gemini-flash
    """
    config = AppConfig.from_env()
    _setup_logging(config.log_level)
    try:
        status = run_async_command(_run_session(config, session_id, list(chatbot_ids)))
    except CoopEngineError as e:
        raise click.ClickException(e.message)
    click.echo(f"Run finished: {status}")


async def _run_session(config: AppConfig, session_id: str, chatbot_ids) -> str:
    storage = create_storage("sqlite", db_path=config.storage.db_path)
    session = await storage.get_session(session_id)
    if session is None:
        raise click.ClickException(f"Session not found: {session_id}")

    async def leaderboard_hook(run, sess):
        await auto_extract_leaderboard(storage, run, sess)

    async def toolkit_hook(run, sess):
        await auto_extract_toolkit(storage, run, sess, config.provider)

    dispatcher = RunDispatcher(
        storage, ProviderPool(config.provider), completion_hooks=[leaderboard_hook, toolkit_hook]
    )
    run_record = await dispatcher.start_run(session, chatbot_ids)
    click.echo(f"Run {run_record.id} started for '{session.title}'")
    status = await dispatcher.execute(run_record, session)

    finished = await storage.get_run(run_record.id)
    for response in finished.responses if finished else []:
        outcome = f"error: {response.error}" if response.error else f"{len(response.content)} chars"
        click.echo(f"  {response.chatbot_id} round {response.step_order + 1}: {outcome}")
    return status.value


@cli.command()
@click.argument("session_id")
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), default="csv", show_default=True)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Output file")
def export(session_id: str, fmt: str, output: Optional[str]):
    """Export every run of a session as CSV or JSON."""
    config = AppConfig.from_env()
    body, filename = run_async_command(_export_session(config, session_id, fmt))
    target = Path(output or filename)
    target.write_text(body, encoding="utf-8")
    click.echo(f"Wrote {target}")


async def _export_session(config: AppConfig, session_id: str, fmt: str):
    storage = create_storage("sqlite", db_path=config.storage.db_path)
    session = await storage.get_session(session_id)
    if session is None:
        raise click.ClickException(f"Session not found: {session_id}")
    runs = await storage.list_runs(session_id=session_id)

    if fmt == "csv":
        body = export_service.results_to_csv(session, runs, config.provider)
    else:
        body = export_service.results_to_json(session, runs)
    return body, export_service.export_filename(session.title, fmt)


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
