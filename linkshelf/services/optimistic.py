from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_failure(label: str) -> Callable[[asyncio.Task], None]:
    def callback(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("%s failed and was rolled back: %s", label, exc)

    return callback


def run_optimistic(
    snapshot: T,
    apply: Callable[[], None],
    persist: Callable[[], Awaitable[None]],
    rollback: Callable[[T], None],
    label: str = "optimistic update",
) -> asyncio.Task:
    """Apply a change now and persist it in the background.

    ``apply`` runs before this function returns, so the new state is visible
    immediately. ``persist`` runs in a task; if it raises, ``rollback`` gets the
    untouched ``snapshot`` and the error is re-raised to whoever awaits the
    returned task. Must be called with an event loop running.
    """
    loop = asyncio.get_running_loop()
    apply()

    async def _persist() -> None:
        try:
            await persist()
        except Exception:
            rollback(snapshot)
            raise

    task = loop.create_task(_persist())
    task.add_done_callback(_log_failure(label))
    return task
