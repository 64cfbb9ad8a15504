"""Bounded worker pool for independent per-target and per-repository jobs."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")


class WorkerPool:
    """Run async jobs with at most ``limit`` in flight, results in submission order."""

    def __init__(self, limit: int) -> None:
        self.limit = max(int(limit), 1)

    async def map(self, jobs: Iterable[Callable[[], Awaitable[T]]]) -> list[T]:
        semaphore = asyncio.Semaphore(self.limit)

        async def _run(job: Callable[[], Awaitable[T]]) -> T:
            async with semaphore:
                return await job()

        tasks = [asyncio.ensure_future(_run(job)) for job in jobs]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # first failure aborts the batch
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
