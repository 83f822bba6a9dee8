"""Join helpers over concurrently scheduled calls."""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


def _cancel(tasks: Iterable[asyncio.Future[Any]]) -> None:
    for task in tasks:
        task.cancel()


def _retrieve(tasks: Iterable[asyncio.Future[Any]]) -> None:
    # Mark finished exceptions as retrieved so they are not reported as unhandled
    for task in tasks:
        if task.done() and not task.cancelled():
            task.exception()


async def join_all(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """Await every call; fail on the first error.

    On the first failure the remaining calls are cancelled and the error is
    raised. Otherwise the results are returned in input order.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        _cancel(tasks)
        raise

    failed = [
        task for task in tasks
        if task in done and not task.cancelled() and task.exception() is not None
    ]
    if failed:
        _cancel(pending)
        _retrieve(done)
        raise failed[0].exception()  # type: ignore[misc]
    return [task.result() for task in tasks]


async def race(awaitables: Iterable[Awaitable[T]]) -> T:
    """Settle with the first call to settle, success or failure.

    The calls that have not settled yet are cancelled.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        raise ValueError("race() requires at least one awaitable")
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        _cancel(tasks)
        raise

    _cancel(pending)
    winner = next(task for task in tasks if task in done)
    _retrieve(task for task in done if task is not winner)
    return winner.result()
