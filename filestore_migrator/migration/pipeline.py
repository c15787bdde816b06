"""
Bounded-concurrency pipeline.

Runs one coroutine per item with at most ``limit`` in flight at any
instant. A permit is acquired before a worker is launched and released
when the worker finishes, whatever its result, so a freed slot admits the
next item immediately.

On the first failure no further items are admitted; workers already in
flight run to completion and the first failure is raised once they have
drained.

Usage:
    >>> pipeline = BoundedPipeline(limit=4)
    >>> results = await pipeline.run(records, migrate_one)
    >>> pipeline.peak_in_flight
    4
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from filestore_migrator.core.logger import get_logger

logger = get_logger(__name__)


class BoundedPipeline:
    """
    Semaphore-bounded task runner with first-error abort.

    Attributes:
        limit: Maximum number of workers in flight
        in_flight: Workers currently running
        peak_in_flight: Highest in-flight count observed during the last run
        admitted: Items launched during the last run
    """

    def __init__(self, limit: int = 1):
        if limit < 1:
            msg = f"Pipeline limit must be at least 1, got {limit}"
            raise ValueError(msg)
        self.limit = limit
        self.in_flight = 0
        self.peak_in_flight = 0
        self.admitted = 0
        self._failure: BaseException | None = None

    @property
    def aborted(self) -> bool:
        return self._failure is not None

    async def run(self, items: Iterable[Any], worker: Callable[[int, Any], Awaitable[Any]]) -> list[Any]:
        """
        Run ``worker(position, item)`` for every item.

        Items are admitted in iteration order; completion order is not
        guaranteed.

        Returns:
            Worker results in admission order

        Raises:
            The first exception raised by any worker
        """
        semaphore = asyncio.Semaphore(self.limit)
        tasks: list[asyncio.Task] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.admitted = 0
        self._failure = None

        async def guarded(position: int, item: Any) -> Any:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await worker(position, item)
            except BaseException as e:
                if self._failure is None:
                    self._failure = e
                raise
            finally:
                self.in_flight -= 1
                semaphore.release()

        try:
            for position, item in enumerate(items, start=1):
                await semaphore.acquire()
                if self._failure is not None:
                    semaphore.release()
                    logger.debug("Pipeline aborted, not admitting item %d", position)
                    break
                tasks.append(asyncio.create_task(guarded(position, item)))
                self.admitted += 1

            results = await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise

        if self._failure is not None:
            raise self._failure

        return results
