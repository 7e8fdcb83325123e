"""Async/event loop utilities."""

import asyncio
from typing import Any


def run_async(coro) -> Any:
    """Run a coroutine from sync code (Celery tasks).

    The worker process keeps one event loop alive across tasks so that
    pooled connections (database, Redis) stay bound to the same loop.
    """
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

    return loop.run_until_complete(coro)


__all__ = ["run_async"]
