"""In-flight load deduplication.

SingleFlight collapses concurrent loads of the same key into one
operation. When many evaluations start at once (one per file save),
only the first reads the truthpack from disk; the rest await its
result.

The shared load runs as its own task and every caller awaits it
through ``asyncio.shield``. A caller that times out or is cancelled
stops waiting without cancelling the load the other callers share.

Single-process only: each worker process has its own instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class SingleFlight[T]:
    """Deduplicates concurrent async loads by key.

    Usage::

        flight = SingleFlight[TruthpackSnapshot]()
        snapshot = await flight.do("snapshot", load_from_disk)
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[T]] = {}

    async def do(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """Run operation once per key among concurrent callers.

        Registration happens without an intervening await, so a late
        caller always finds the in-flight task instead of starting a
        duplicate load.
        """
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.create_task(_run(operation), name=f"single_flight:{key}")
            self._tasks[key] = task
            task.add_done_callback(lambda t: self._release(key, t))
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Every caller may have stopped waiting; mark the outcome retrieved
        if not task.cancelled() and task.exception() is not None:
            logger.debug(
                "event=single_flight_failed key=%s error=%s",
                key,
                task.exception(),
            )

    @property
    def active_keys(self) -> list[str]:
        """Return keys with a load currently in flight."""
        return list(self._tasks.keys())


async def _run[T](operation: Callable[[], Awaitable[T]]) -> T:
    return await operation()
