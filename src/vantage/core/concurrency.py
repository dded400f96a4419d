"""Bounded fan-out helpers for batch evaluation."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_bounded(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    limit: int,
) -> list[R | BaseException]:
    """Run ``func`` over every item with at most ``limit`` calls in flight.

    Results line up with the input order. A call that raises yields its
    exception in place of a result, so one failure never aborts the batch.

    Args:
        items: Inputs to evaluate.
        func: Coroutine function applied to each input.
        limit: Maximum concurrent calls.

    Returns:
        One result or exception per input item.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    tasks = [_run(item) for item in items]
    if not tasks:
        return []
    return await asyncio.gather(*tasks, return_exceptions=True)
