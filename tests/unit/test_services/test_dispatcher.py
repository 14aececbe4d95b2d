"""Tests for the run dispatcher."""

from unittest.mock import AsyncMock

import pytest

from coopengine.core.errors import ProviderNotConfiguredError
from coopengine.services.dispatcher import RunDispatcher
from coopengine.storage.base import RunStatus


class TestStartRun:
    @pytest.mark.asyncio
    async def test_run_created_running(self, store, mock_pool, sample_session):
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o"])

        assert run.status == RunStatus.RUNNING
        stored = await store.get_run(run.id)
        assert stored.status == RunStatus.RUNNING
        assert stored.chatbot_ids == ["openai-gpt4o"]
        mock_pool.complete.assert_not_called()


class TestExecute:
    @pytest.mark.asyncio
    async def test_system_steps_skip_round_index(self, store, mock_pool, sample_session):
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o"])

        status = await dispatcher.execute(run, sample_session)

        assert status == RunStatus.COMPLETED
        stored = await store.get_run(run.id)
        assert stored.status == RunStatus.COMPLETED
        assert stored.completed_at is not None
        assert [r.step_order for r in stored.responses] == [0, 1]
        assert mock_pool.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_history_carries_system_and_replies(self, store, mock_pool, sample_session):
        mock_pool.complete.side_effect = ["first reply", "second reply"]
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o"])
        await dispatcher.execute(run, sample_session)

        second_call_messages = mock_pool.complete.call_args_list[1].args[1]
        assert [(m.role, m.content) for m in second_call_messages] == [
            ("system", "You are a player."),
            ("user", "First question"),
            ("assistant", "first reply"),
            ("user", "Second question"),
        ]

    @pytest.mark.asyncio
    async def test_failed_call_recorded_and_next_round_proceeds(self, store, mock_pool, sample_session):
        mock_pool.complete.side_effect = [ProviderNotConfiguredError("xai", "XAI_API_KEY"), "recovered"]
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o"])

        status = await dispatcher.execute(run, sample_session)

        assert status == RunStatus.COMPLETED
        responses = (await store.get_run(run.id)).responses
        assert responses[0].error == "XAI_API_KEY not configured"
        assert responses[0].content == ""
        assert responses[1].step_order == 1
        assert responses[1].content == "recovered"

        # The failed round leaves no assistant turn in the history
        second_call_messages = mock_pool.complete.call_args_list[1].args[1]
        assert [m.role for m in second_call_messages] == ["system", "user", "user"]

    @pytest.mark.asyncio
    async def test_chatbots_run_independently(self, store, mock_pool, sample_session):
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o", "gemini-flash"])
        await dispatcher.execute(run, sample_session)

        responses = (await store.get_run(run.id)).responses
        assert len(responses) == 4
        for chatbot_id in ("openai-gpt4o", "gemini-flash"):
            assert sorted(r.step_order for r in responses if r.chatbot_id == chatbot_id) == [0, 1]

    @pytest.mark.asyncio
    async def test_unknown_chatbot_skipped(self, store, mock_pool, sample_session):
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["no-such-bot"])
        assert await dispatcher.execute(run, sample_session) == RunStatus.COMPLETED
        assert (await store.get_run(run.id)).responses == []

    @pytest.mark.asyncio
    async def test_storage_failure_marks_run_failed(self, store, mock_pool, sample_session):
        dispatcher = RunDispatcher(store, mock_pool)
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o"])
        store.add_response = AsyncMock(side_effect=RuntimeError("disk full"))

        assert await dispatcher.execute(run, sample_session) == RunStatus.FAILED
        stored = await store.get_run(run.id)
        assert stored.status == RunStatus.FAILED
        assert stored.completed_at is not None

    @pytest.mark.asyncio
    async def test_hooks_get_completed_run_and_errors_are_contained(self, store, mock_pool, sample_session):
        seen = []

        async def broken_hook(run, session):
            raise ValueError("parse failure")

        async def recording_hook(run, session):
            seen.append((run.status, len(run.responses), session.id))

        dispatcher = RunDispatcher(store, mock_pool, completion_hooks=[broken_hook, recording_hook])
        run = await dispatcher.start_run(sample_session, ["openai-gpt4o"])

        assert await dispatcher.execute(run, sample_session) == RunStatus.COMPLETED
        assert seen == [(RunStatus.COMPLETED, 2, sample_session.id)]
