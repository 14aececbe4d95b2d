"""
Run Dispatcher

Fans a session's prompt script out to every selected chatbot and records
one response per (chatbot, round):

- Chatbots run concurrently with each other
- Within a chatbot, rounds run sequentially and carry the history forward
- System steps are context only: no call, no round index
- A failed call is recorded with its error and the next round proceeds
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from coopengine.providers.base import ChatMessage
from coopengine.providers.pool import ProviderPool
from coopengine.providers.registry import Chatbot, get_chatbot
from coopengine.storage.base import ChatbotResponse, Run, RunStatus, Session, StorageBackend, utc_now

logger = logging.getLogger(__name__)

# Called with the completed run and its session; failures are logged only
CompletionHook = Callable[[Run, Session], Awaitable[None]]


class RunDispatcher:
    """Executes runs against the configured providers."""

    def __init__(
        self,
        storage: StorageBackend,
        pool: ProviderPool,
        completion_hooks: Optional[List[CompletionHook]] = None,
    ):
        self.storage = storage
        self.pool = pool
        self.completion_hooks = list(completion_hooks or [])

    async def start_run(self, session: Session, chatbot_ids: List[str]) -> Run:
        """Create a run record and mark it running. Does not dispatch."""
        run = Run(session_id=session.id, chatbot_ids=list(chatbot_ids))
        await self.storage.create_run(run)
        await self.storage.update_run_status(run.id, RunStatus.RUNNING)
        run.status = RunStatus.RUNNING
        return run

    async def execute(self, run: Run, session: Session) -> RunStatus:
        """
        Dispatch every chatbot of the run and settle its final status.

        Returns:
            The terminal status written to storage
        """
        logger.info("Run %s: dispatching %d chatbot(s)", run.id, len(run.chatbot_ids))

        try:
            await asyncio.gather(
                *(self._run_chatbot(run.id, chatbot_id, session) for chatbot_id in run.chatbot_ids)
            )
        except Exception as e:
            logger.error("Run %s failed: %s", run.id, e)
            await self.storage.update_run_status(run.id, RunStatus.FAILED, completed_at=utc_now())
            return RunStatus.FAILED

        await self.storage.update_run_status(run.id, RunStatus.COMPLETED, completed_at=utc_now())
        logger.info("Run %s completed", run.id)

        await self._run_hooks(run.id, session)
        return RunStatus.COMPLETED

    async def _run_chatbot(self, run_id: str, chatbot_id: str, session: Session):
        chatbot = get_chatbot(chatbot_id, self.pool.config)
        if chatbot is None:
            logger.warning("Run %s: unknown chatbot %s skipped", run_id, chatbot_id)
            return

        history: List[ChatMessage] = []
        round_index = 0

        for step in session.sorted_prompts():
            history.append(ChatMessage(role=step.role, content=step.content))

            if step.role == "system":
                continue

            response = await self._call(chatbot, history, round_index)
            await self.storage.add_response(run_id, response)

            if response.error is None:
                history.append(ChatMessage(role="assistant", content=response.content))
            round_index += 1

    async def _call(self, chatbot: Chatbot, history: List[ChatMessage], round_index: int) -> ChatbotResponse:
        start = time.monotonic()
        try:
            # Pass a copy; the caller keeps appending to the history
            content = await self.pool.complete(chatbot, list(history))
        except Exception as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.warning("%s round %d failed: %s", chatbot.id, round_index, e)
            return ChatbotResponse(
                chatbot_id=chatbot.id,
                step_order=round_index,
                content="",
                latency_ms=latency_ms,
                error=str(e) or type(e).__name__,
            )

        latency_ms = int((time.monotonic() - start) * 1000)
        return ChatbotResponse(
            chatbot_id=chatbot.id,
            step_order=round_index,
            content=content,
            latency_ms=latency_ms,
        )

    async def _run_hooks(self, run_id: str, session: Session):
        if not self.completion_hooks:
            return

        completed = await self.storage.get_run(run_id)
        if completed is None:
            return

        for hook in self.completion_hooks:
            try:
                await hook(completed, session)
            except Exception as e:
                logger.error("Post-run extraction failed for run %s: %s", run_id, e)
