"""
Cancellation helpers shared by the service layer.

Callers pass an ``asyncio.Event`` as a cancel signal; setting it abandons
whatever the data layer is waiting on for that caller.
"""

import asyncio
from typing import Awaitable, TypeVar

from catalog.services.errors import RequestCancelledError

T = TypeVar("T")


async def wait_cancellable(
    awaitable: Awaitable[T],
    signal: asyncio.Event | None = None,
    timeout: float | None = None,
) -> T:
    """
    Await ``awaitable`` racing it against ``signal`` and ``timeout``.

    Whatever loses the race is cancelled before returning, so no timer or
    request outlives the call.

    Raises:
        RequestCancelledError: ``signal`` was set first
        asyncio.TimeoutError: ``timeout`` elapsed first
    """
    if signal is not None and signal.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        elif asyncio.isfuture(awaitable):
            awaitable.cancel()
        raise RequestCancelledError()

    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future] = {task}
    signal_waiter = None
    if signal is not None:
        signal_waiter = asyncio.ensure_future(signal.wait())
        waiters.add(signal_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()

    if task in done:
        return task.result()
    if signal_waiter is not None and signal_waiter in done:
        raise RequestCancelledError()
    raise asyncio.TimeoutError()
