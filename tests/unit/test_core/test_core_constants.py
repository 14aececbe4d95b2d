"""Tests for central constants and their environment overrides."""

import pytest

from coopengine.core import constants
from coopengine.core.errors import InvalidConfigError


@pytest.fixture(autouse=True)
def restore_limits():
    saved = (constants.RATE_LIMIT_RUN_SUBMIT, constants.RATE_LIMIT_STATUS, constants.RATE_LIMIT_LISTING)
    yield
    constants.RATE_LIMIT_RUN_SUBMIT, constants.RATE_LIMIT_STATUS, constants.RATE_LIMIT_LISTING = saved


class TestDefaults:
    def test_token_limits(self):
        assert constants.OPENAI_MAX_COMPLETION_TOKENS == 2048
        assert constants.ANTHROPIC_MAX_TOKENS == 2048
        assert constants.XAI_MAX_TOKENS == 2048
        assert constants.OPENROUTER_MAX_TOKENS == 4096

    def test_arena_defaults(self):
        assert constants.ARENA_DEFAULT_GAME == "prisoners-dilemma"
        assert constants.ARENA_DEFAULT_ROUNDS == 10
        assert constants.ARENA_MAX_ROUNDS == 100
        assert constants.ARENA_DEFAULT_TEMPTATION == 5


class TestLoadConstants:
    def test_defaults_without_env(self, monkeypatch):
        for key in (
            "COOPENGINE_RATE_LIMIT_RUN_SUBMIT",
            "COOPENGINE_RATE_LIMIT_STATUS",
            "COOPENGINE_RATE_LIMIT_LISTING",
        ):
            monkeypatch.delenv(key, raising=False)
        constants.load_constants()
        assert constants.RATE_LIMIT_RUN_SUBMIT == "10 per minute"
        assert constants.RATE_LIMIT_STATUS == "120 per minute"
        assert constants.RATE_LIMIT_LISTING == "60 per minute"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("COOPENGINE_RATE_LIMIT_RUN_SUBMIT", "3 per minute")
        constants.load_constants()
        assert constants.RATE_LIMIT_RUN_SUBMIT == "3 per minute"

    def test_blank_env_rejected(self, monkeypatch):
        monkeypatch.setenv("COOPENGINE_RATE_LIMIT_LISTING", "  ")
        with pytest.raises(InvalidConfigError):
            constants.load_constants()
