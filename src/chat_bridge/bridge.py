"""Expose a push/callback chunk producer as an ordered async pull stream."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import cast

from chat_bridge.backends.base import ChunkCallback

_logger = logging.getLogger(__name__)

Producer = Callable[[ChunkCallback, threading.Event], Awaitable[None]]
ErrorHandler = Callable[[BaseException], None]

_CLOSED = object()


async def stream_from_callback(
    produce: Producer,
    *,
    cancel_event: asyncio.Event | None = None,
    on_error: ErrorHandler | None = None,
) -> AsyncIterator[str]:
    """Run ``produce`` in its own task and yield the chunks it pushes, in order.

    ``produce`` receives the chunk callback and a ``threading.Event`` that is
    set once the consumer stops listening. The callback may be called from
    any thread. A producer failure ends the stream early instead of raising;
    ``on_error`` is told about it.
    """

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[object] = asyncio.Queue()
    stop_event = threading.Event()

    def _push(chunk: str) -> None:
        if stop_event.is_set():
            return
        try:
            # Both chunks and the close marker go through the loop's ready
            # queue, which keeps them in push order.
            loop.call_soon_threadsafe(queue.put_nowait, chunk)
        except RuntimeError:
            # loop already closed; nobody is listening any more
            stop_event.set()

    async def _runner() -> None:
        try:
            await produce(_push, stop_event)
        except asyncio.CancelledError:
            _logger.debug("Stream producer cancelled")
            raise
        except Exception as exc:
            _logger.warning("Stream producer failed; ending stream early: %s", exc)
            if on_error is not None:
                on_error(exc)
        finally:
            loop.call_soon(queue.put_nowait, _CLOSED)

    async def _watch_cancel(event: asyncio.Event) -> None:
        await event.wait()
        stop_event.set()
        producer.cancel()
        queue.put_nowait(_CLOSED)

    producer = asyncio.create_task(_runner())
    watcher = asyncio.create_task(_watch_cancel(cancel_event)) if cancel_event is not None else None
    try:
        while True:
            item = await queue.get()
            if item is _CLOSED:
                break
            if cancel_event is not None and cancel_event.is_set():
                break
            yield cast(str, item)
    finally:
        stop_event.set()
        pending = [t for t in (producer, watcher) if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            with contextlib.suppress(BaseException):
                await asyncio.gather(*pending, return_exceptions=True)
