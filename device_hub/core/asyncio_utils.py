"""Asyncio helpers for fire-and-forget tasks."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def add_task_exception_logger(
    task: asyncio.Task[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Retrieve and log the exception of a finished task.

    Writer and close tasks are never awaited by the hub, so without this
    their failures would only surface as "Task exception was never
    retrieved" at garbage collection time.
    """
    task_logger = ensure_structured_logger(logger, fallback_name="asyncio")
    label = context or task.get_name() or "background task"

    def _done(done_task: asyncio.Task[Any]) -> None:
        if done_task.cancelled():
            return
        exc = done_task.exception()
        if exc is not None:
            task_logger.error("Unhandled exception in %s", label, exc_info=exc)

    task.add_done_callback(_done)
    return task


def create_logged_task(
    coro: Awaitable[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Create a task that won't lose exceptions."""
    loop = asyncio.get_running_loop()
    task = loop.create_task(coro, name=context)
    add_task_exception_logger(task, logger=logger, context=context)
    return task


__all__ = ["add_task_exception_logger", "create_logged_task"]
