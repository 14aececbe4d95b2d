"""Helpers for running async CLI command coroutines."""

import asyncio
from typing import Any


def run_async_command(coro, runner=None) -> Any:
    """Run a coroutine, closing it if a mocked runner never consumed it."""
    if runner is None:
        runner = asyncio.run

    try:
        return runner(coro)
    finally:
        if asyncio.iscoroutine(coro) and getattr(coro, "cr_frame", None) is not None:
            coro.close()
