"""Bounded concurrency pool for per-file tool invocations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class TaskPool:
    """Caps how many tasks of one release run at once.

    Every stage of a release shares one pool so the number of live external
    processes never exceeds ``limit``. Waiters are admitted in submission
    order.
    """

    def __init__(self, limit: int):
        if limit < 1:
            msg = f"Pool limit must be at least 1, got {limit}"
            raise ValueError(msg)
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.active = 0

    async def submit(self, func: Callable[..., Awaitable[R]], *args: Any) -> R:
        """Run one coroutine function once a slot is free."""
        async with self._semaphore:
            self.active += 1
            try:
                return await func(*args)
            finally:
                self.active -= 1

    async def map(self, func: Callable[[T], Awaitable[R]], items: Iterable[T]) -> list[R]:
        """Run func over items and wait for every task.

        The first failure to complete is raised after all tasks settle;
        results of tasks still running at that point are discarded.
        Cancelling the map cancels every task it started.
        """
        tasks = [asyncio.ensure_future(self.submit(func, item)) for item in items]
        if not tasks:
            return []

        first_error: BaseException | None = None
        try:
            for future in asyncio.as_completed(tasks):
                try:
                    await future
                except Exception as e:
                    if first_error is None:
                        first_error = e
                    else:
                        logger.debug(f"Additional task failure discarded: {e}")
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if first_error is not None:
            raise first_error
        return [task.result() for task in tasks]

    async def map_blocking(self, func: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Blocking counterpart of ``map`` for library calls such as mutagen."""

        async def call(item: T) -> R:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, func, item)

        return await self.map(call, items)
