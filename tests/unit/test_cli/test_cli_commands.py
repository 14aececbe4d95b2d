"""Tests for the coopengine CLI - no API calls."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from coopengine import __version__
from coopengine.cli.async_runner import run_async_command
from coopengine.cli.main import cli
from coopengine.providers.pool import ProviderPool
from coopengine.storage import SQLiteStore
from coopengine.storage.base import PromptStep, RunStatus, Session


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def db_env(tmp_path, monkeypatch):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("COOPENGINE_DB_PATH", str(db_path))
    return SQLiteStore(db_path=str(db_path))


@pytest.fixture
def saved_session(db_env):
    session = Session(
        title="CLI Session",
        prompts=[PromptStep(id="a", order=0, role="user", content="Cooperate?")],
    )
    asyncio.run(db_env.create_session(session))
    return session


class TestStructure:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "chatbots", "run", "export"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert __version__ in result.output


class TestChatbotsCommand:
    def test_lists_catalog(self, runner):
        result = runner.invoke(cli, ["chatbots"])
        assert result.exit_code == 0
        assert "openai-gpt4o" in result.output
        assert "[-] anthropic-opus" in result.output
        assert "(no key)" in result.output


class TestRunCommand:
    def test_requires_chatbot(self, runner, saved_session):
        result = runner.invoke(cli, ["run", saved_session.id])
        assert result.exit_code != 0

    def test_unknown_session(self, runner, db_env):
        result = runner.invoke(cli, ["run", "nope", "-c", "openai-gpt4o"])
        assert result.exit_code != 0
        assert "Session not found" in result.output

    def test_runs_to_completion(self, runner, db_env, saved_session):
        with patch.object(ProviderPool, "complete", new=AsyncMock(return_value="COOPERATE")):
            result = runner.invoke(cli, ["run", saved_session.id, "-c", "openai-gpt4o"])

        assert result.exit_code == 0, result.output
        assert "Run finished: completed" in result.output
        assert "openai-gpt4o round 1: 9 chars" in result.output

        runs = asyncio.run(db_env.list_runs(session_id=saved_session.id))
        assert runs[0].status == RunStatus.COMPLETED


class TestExportCommand:
    def test_json_export(self, runner, saved_session, tmp_path):
        target = tmp_path / "out.json"
        result = runner.invoke(cli, ["export", saved_session.id, "--format", "json", "-o", str(target)])

        assert result.exit_code == 0, result.output
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["session"]["title"] == "CLI Session"

    def test_unknown_session(self, runner, db_env, tmp_path):
        result = runner.invoke(cli, ["export", "nope", "-o", str(tmp_path / "x.csv")])
        assert result.exit_code != 0


class TestServeCommand:
    def test_serve_uses_config(self, runner, monkeypatch):
        monkeypatch.setenv("COOPENGINE_PORT", "5055")
        app = MagicMock()
        with patch("coopengine.api.create_app", return_value=app):
            result = runner.invoke(cli, ["serve", "--host", "127.0.0.1"])

        assert result.exit_code == 0, result.output
        app.run.assert_called_once_with(host="127.0.0.1", port=5055, debug=False)


def test_run_async_command_closes_unconsumed_coroutine():
    async def job():
        return 1

    coro = job()
    run_async_command(coro, runner=lambda c: None)
    assert coro.cr_frame is None
