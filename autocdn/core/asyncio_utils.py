"""Background task helpers shared by the controller, the bus and the engine supervisor."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Coroutine, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def create_logged_task(
    coro: Coroutine[Any, Any, Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Schedule ``coro`` and log its exception, if any, once it finishes.

    Fire-and-forget tasks otherwise only report failures as "Task exception
    was never retrieved" when they are garbage collected.
    """
    task = asyncio.get_running_loop().create_task(coro, name=context)
    task_logger = ensure_structured_logger(logger, fallback_name="tasks")
    label = context or task.get_name()

    def _log_failure(done: asyncio.Task[Any]) -> None:
        if done.cancelled():
            return
        error = done.exception()
        if error is not None:
            task_logger.error("Unhandled exception in %s: %s", label, error, exc_info=error)

    task.add_done_callback(_log_failure)
    return task


async def cancel_task(task: Optional[asyncio.Task[Any]]) -> None:
    """Cancel ``task`` and wait for it to unwind."""
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


__all__ = ["cancel_task", "create_logged_task"]
