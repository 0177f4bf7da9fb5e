"""Race backend calls against a caller-owned cancellation event."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from collections.abc import AsyncIterator, Awaitable
from typing import TypeVar

from chat_bridge.errors import RequestCancelledError

T = TypeVar("T")


async def run_cancellable(awaitable: Awaitable[T], cancel_event: asyncio.Event | None) -> T:
    """Await ``awaitable`` unless ``cancel_event`` fires first.

    Raises ``RequestCancelledError`` on cancellation; the backend call is
    cancelled too.
    """

    if cancel_event is None:
        return await awaitable
    if cancel_event.is_set():
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise RequestCancelledError()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            with contextlib.suppress(BaseException):
                await asyncio.gather(task, return_exceptions=True)

    if task.cancelled():
        raise RequestCancelledError()
    return task.result()


async def iterate_cancellable(
    source: AsyncIterator[T], cancel_event: asyncio.Event | None
) -> AsyncIterator[T]:
    """Yield from ``source`` until it ends or ``cancel_event`` is set."""

    try:
        if cancel_event is None:
            async for item in source:
                yield item
            return

        while not cancel_event.is_set():
            try:
                item = await run_cancellable(source.__anext__(), cancel_event)
            except (StopAsyncIteration, RequestCancelledError):
                return
            yield item
    finally:
        aclose = getattr(source, "aclose", None)
        if aclose is not None:
            await aclose()
