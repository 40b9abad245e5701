"""
RequestDeduplicator - Coalesces concurrent requests for the same resource.

When multiple callers request the same key simultaneously, only one
underlying operation runs and every caller receives its outcome (result or
exception).

Cancellation policy: a caller that gives up (cancel signal set, or its own
task cancelled) only detaches itself. The shared operation is cancelled
when the last interested caller has left.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from catalog.services.cancellation import wait_cancellable

T = TypeVar("T")


@dataclass
class PendingRequest:
    """One in-flight logical operation and how many callers await it."""

    key: str
    task: asyncio.Task
    waiters: int = 0


class RequestDeduplicator:
    """
    Deduplicates concurrent async requests.

    Usage:
        dedup = RequestDeduplicator()

        async def fetch_page(page: int, signal: asyncio.Event | None = None):
            return await dedup.coalesce(
                key=f"popular:page={page}",
                request_fn=lambda: source.popular(page),
                signal=signal,
            )
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, PendingRequest] = {}
        self._lock = asyncio.Lock()
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def coalesce(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[T]],
        signal: asyncio.Event | None = None,
    ) -> T:
        """
        Execute request with deduplication.

        If a request with the same key is already in flight, wait for and
        return its result instead of making a new request.

        Args:
            key: Unique identifier for the logical resource
            request_fn: Async function to execute if no request is in flight
            signal: This caller's cancel signal

        Returns:
            Result from request_fn (either fresh or from in-flight request)
        """
        async with self._lock:
            pending = self._in_flight.get(key)
            if pending is not None:
                self._stats.deduplicated += 1
                self._log(f"DEDUPE: Waiting for in-flight request: {key[:50]}")
            else:
                self._stats.total += 1
                self._log(f"NEW: Starting request: {key[:50]}")
                pending = PendingRequest(key, asyncio.ensure_future(request_fn()))
                self._in_flight[key] = pending
                pending.task.add_done_callback(
                    lambda _task, p=pending: self._cleanup(p)
                )
            pending.waiters += 1

        try:
            return await wait_cancellable(asyncio.shield(pending.task), signal)
        finally:
            pending.waiters -= 1
            if pending.waiters == 0 and not pending.task.done():
                # Forget the key first so a new caller never joins a cancelled task
                if self._in_flight.get(pending.key) is pending:
                    del self._in_flight[pending.key]
                pending.task.cancel()
                self._log(f"ABANDONED: Last caller left, cancelling: {key[:50]}")

    def _cleanup(self, pending: PendingRequest) -> None:
        """Drop the pending entry once its task settles."""
        if self._in_flight.get(pending.key) is pending:
            del self._in_flight[pending.key]
        self._log(f"DONE: Request completed: {pending.key[:50]}")

    async def cancel(self, key: str) -> bool:
        """Cancel an in-flight request for every waiter."""
        async with self._lock:
            if key in self._in_flight:
                pending = self._in_flight.pop(key)
                pending.task.cancel()
                self._log(f"CANCEL: Request cancelled: {key[:50]}")
                return True
            return False

    async def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        async with self._lock:
            count = len(self._in_flight)
            for pending in self._in_flight.values():
                pending.task.cancel()
            self._in_flight.clear()
            if count:
                self._log(f"CANCEL_ALL: {count} requests cancelled")
            return count

    def clear(self) -> None:
        """
        Forget in-flight bookkeeping without cancelling anything.

        Callers already waiting still get their result; the next call for the
        same key starts fresh work.
        """
        self._in_flight.clear()

    def get_in_flight_count(self) -> int:
        """Get number of in-flight requests."""
        return len(self._in_flight)

    def get_in_flight_keys(self) -> list[str]:
        """Get keys of all in-flight requests."""
        return list(self._in_flight.keys())

    def get_stats(self) -> "DeduplicatorStats":
        """Get deduplication statistics."""
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for request deduplication."""

    def __init__(self):
        self.total: int = 0  # Total unique requests made
        self.deduplicated: int = 0  # Requests that were deduplicated
        self.in_flight: int = 0  # Current in-flight requests

    @property
    def dedup_rate(self) -> float:
        """Calculate deduplication rate."""
        total = self.total + self.deduplicated
        if total == 0:
            return 0.0
        return self.deduplicated / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }
