from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

_running_tasks: dict[str, asyncio.Task[Any]] = {}


def start_task(key: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    """Create an asyncio task and keep a reference to it under ``key``."""
    task = asyncio.create_task(coro, name=key)
    _running_tasks[key] = task
    task.add_done_callback(lambda t: _forget(key, t))
    return task


def _forget(key: str, task: asyncio.Task[Any]) -> None:
    if _running_tasks.get(key) is task:
        del _running_tasks[key]


def get_task(key: str) -> asyncio.Task[Any] | None:
    return _running_tasks.get(key)


def is_running(key: str) -> bool:
    task = _running_tasks.get(key)
    return task is not None and not task.done()


async def drain() -> None:
    """Wait for every registered task to finish. Task errors are logged, not raised."""
    while _running_tasks:
        tasks = list(_running_tasks.values())
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException) and not isinstance(
                result, asyncio.CancelledError
            ):
                logger.warning("Background task %s failed: %r", task.get_name(), result)
            _forget(task.get_name(), task)
