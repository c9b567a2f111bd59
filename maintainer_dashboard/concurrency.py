"""Bounded-concurrency helper for per-repository passes."""

import asyncio
from typing import Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int = 1,
) -> list[R]:
    """
    Run worker over items with at most `limit` calls in flight.

    Results come back in input order. With limit=1 the calls are strictly
    sequential, each starting after the previous one finished.
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be at least 1, got {limit}.")

    semaphore = asyncio.Semaphore(limit)

    async def run_with_semaphore(item: T) -> R:
        async with semaphore:
            return await worker(item)

    tasks = [run_with_semaphore(item) for item in items]
    return list(await asyncio.gather(*tasks))
