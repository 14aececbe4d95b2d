"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock

import pytest

from coopengine.config import AppConfig, ProviderConfig, ServerConfig, StorageConfig
from coopengine.providers.pool import ProviderPool
from coopengine.services.background import InlineRunner
from coopengine.storage import SQLiteStore
from coopengine.storage.base import PromptStep, Session

_PROVIDER_ENV = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "XAI_API_KEY",
    "OPENROUTER_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch):
    """Keep real keys from a developer's .env out of unit tests."""
    for key in _PROVIDER_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite store in a temporary directory."""
    return SQLiteStore(db_path=str(tmp_path / "test.db"))


@pytest.fixture
def provider_config():
    return ProviderConfig(openai_api_key="sk-test", anthropic_api_key="sk-ant-test", gemini_api_key="g-test")


@pytest.fixture
def app_config(tmp_path, provider_config):
    return AppConfig(
        provider=provider_config,
        storage=StorageConfig(db_path=str(tmp_path / "app.db")),
        server=ServerConfig(rate_limit_enabled=False),
    )


@pytest.fixture
def mock_pool(provider_config):
    """Provider pool whose complete() is an AsyncMock returning "COOPERATE"."""
    pool = ProviderPool(provider_config)
    pool.complete = AsyncMock(return_value="COOPERATE")
    return pool


@pytest.fixture
def sample_session():
    return Session(
        title="Trust Game",
        prompts=[
            PromptStep(id="p2", order=2, role="user", content="Second question"),
            PromptStep(id="p0", order=0, role="system", content="You are a player."),
            PromptStep(id="p1", order=1, role="user", content="First question"),
        ],
    )


@pytest.fixture
def app(app_config, store, mock_pool):
    from coopengine.api import create_app

    app = create_app(app_config, storage=store, pool=mock_pool, runner=InlineRunner())
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
