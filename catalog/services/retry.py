"""
RetryExecutor - Runs one async operation with timeout, backoff and a circuit breaker.

Each attempt:
1. asks the breaker for permission (CircuitOpenError if refused, no attempt spent)
2. races the operation against a timeout and the caller's cancel signal
3. reports network-level outcomes back to the breaker
4. backs off exponentially with jitter before retrying retryable errors
"""

import asyncio
import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from catalog.services.cancellation import wait_cancellable
from catalog.services.circuit_breaker import CircuitBreaker
from catalog.services.errors import (
    CircuitOpenError,
    RequestCancelledError,
    RequestTimeoutError,
    ServiceError,
)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retries."""

    max_retries: int = 3  # Retries after the first attempt
    timeout: timedelta = timedelta(seconds=10)
    initial_delay: timedelta = timedelta(milliseconds=300)
    max_delay: timedelta = timedelta(seconds=10)
    jitter_ratio: float = 0.3


def next_delay(previous: float, max_delay: float, jitter_ratio: float = 0.3) -> float:
    """Double the previous delay, add up to ``jitter_ratio`` of it, cap at max."""
    jitter = random.uniform(0, jitter_ratio * previous)
    return min(previous * 2 + jitter, max_delay)


class RetryExecutor:
    """
    Retry wrapper sharing one circuit breaker across every caller.

    Usage:
        executor = RetryExecutor(CircuitBreaker("tmdb"))
        data = await executor.execute(lambda: source.popular(page=1), signal=event)
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.breaker = breaker
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int | None = None,
        signal: asyncio.Event | None = None,
    ) -> T:
        """
        Execute ``operation`` with retries.

        Args:
            operation: Factory returning a fresh awaitable per attempt
            max_retries: Override configured retry count
            signal: Cancel signal; setting it aborts the attempt or backoff

        Returns:
            Result of the first successful attempt

        Raises:
            CircuitOpenError: Breaker refused an attempt
            RequestCancelledError: Caller cancelled
            ServiceError: Non-retryable failure, or the last retryable one
        """
        retries = self.config.max_retries if max_retries is None else max_retries
        if retries < 0:
            raise ValueError("max_retries must be >= 0")
        timeout = self.config.timeout.total_seconds()
        max_delay = self.config.max_delay.total_seconds()
        delay = self.config.initial_delay.total_seconds()
        service_id = self.breaker.service_id
        for attempt in range(retries + 1):
            if not self.breaker.can_attempt():
                raise CircuitOpenError(
                    service_id, self.breaker.get_time_until_reset() or 0
                )

            try:
                result = await wait_cancellable(operation(), signal, timeout=timeout)
            except asyncio.TimeoutError:
                last_error = RequestTimeoutError(service_id, timeout)
            except RequestCancelledError:
                self.breaker.release()
                raise
            except ServiceError as e:
                last_error = e
            except (asyncio.CancelledError, Exception):
                self.breaker.release()
                raise
            else:
                self.breaker.record_success()
                return result

            if not last_error.retryable:
                # Upstream answered; the failure is about the request itself.
                self.breaker.release()
                raise last_error

            self.breaker.record_failure()

            if attempt == retries:
                logger.error(
                    f"Giving up on '{service_id}' after {retries + 1} attempts"
                )
                raise last_error

            delay = next_delay(delay, max_delay, self.config.jitter_ratio)
            logger.warning(
                f"Attempt {attempt + 1}/{retries + 1} to '{service_id}' failed: "
                f"{last_error}; retrying in {delay:.2f}s"
            )
            await wait_cancellable(self._sleep(delay), signal)

        raise RuntimeError("unreachable: retry loop exited without a result")
