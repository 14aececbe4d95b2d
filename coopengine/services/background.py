"""Background execution of runs and arena matches.

HTTP handlers answer 201 immediately and hand the coroutine to a runner.
All jobs share one event loop on a daemon thread; provider clients created
by one job stay usable by the next.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Coroutine, Optional

logger = logging.getLogger(__name__)


async def _guarded(coro: Coroutine, name: str) -> None:
    try:
        await coro
    except Exception:
        logger.exception("Background job %s crashed", name)


class ThreadRunner:
    """Runs submitted coroutines on a single long-lived event loop thread."""

    def __init__(self, thread_name: str = "coopengine-jobs"):
        self.thread_name = thread_name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._serve, args=(loop,), name=self.thread_name, daemon=True
                )
                thread.start()
                self._loop, self._thread = loop, thread
                logger.debug("Started background loop thread %s", self.thread_name)
            return self._loop

    @staticmethod
    def _serve(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    def submit(self, coro: Coroutine, name: str = "coopengine-job") -> concurrent.futures.Future:
        """Schedule a coroutine; the returned future resolves when the job ends."""
        logger.debug("Submitting %s", name)
        return asyncio.run_coroutine_threadsafe(_guarded(coro, name), self._ensure_loop())

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the loop thread. Jobs still pending are abandoned."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=timeout)
        if not thread.is_alive():
            loop.close()


class InlineRunner:
    """Runs submitted coroutines synchronously; used by the CLI and tests."""

    def submit(self, coro: Coroutine, name: str = "coopengine-job") -> None:
        logger.debug("Running %s inline", name)
        asyncio.run(coro)
