"""
CircuitBreaker - Stops calling an upstream that is known to be failing.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service is failing, requests are blocked until the cooldown ends
- HALF_OPEN: A single probe request is allowed through

Transitions:
- CLOSED → OPEN: When failure_threshold consecutive failures are recorded
- OPEN → HALF_OPEN: On the first can_attempt() call after the cooldown
- HALF_OPEN → CLOSED: On successful probe
- HALF_OPEN → OPEN: On failed probe (new cooldown)
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from loguru import logger


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking requests
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    cooldown: timedelta = timedelta(seconds=60)  # Time before half-open
    half_open_max_requests: int = 1  # Probes allowed in half-open state


class CircuitBreaker:
    """
    Circuit breaker for one endpoint class.

    ``can_attempt()`` is not a pure query: when the breaker is OPEN and the
    cooldown has elapsed it moves the breaker to HALF_OPEN and claims the
    probe slot. Call it exactly once per attempt.

    Usage:
        cb = CircuitBreaker("tmdb")

        if not cb.can_attempt():
            raise CircuitOpenError(...)

        try:
            result = await make_request()
            cb.record_success()
            return result
        except Exception:
            cb.record_failure()
            raise
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time: datetime | None = None
        self._open_until: datetime | None = None
        self._half_open_requests = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Current state. Reading it never triggers a transition."""
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def can_attempt(self) -> bool:
        """Check if a request is allowed, performing OPEN → HALF_OPEN if due."""
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._open_until is None or self._clock() < self._open_until:
                    return False
                self._state = CircuitState.HALF_OPEN
                self._half_open_requests = 0
                logger.info(
                    f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN"
                )

            # HALF_OPEN: Allow limited probes
            if self._half_open_requests < self.config.half_open_max_requests:
                self._half_open_requests += 1
                return True
            return False

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._close()
            else:
                self._consecutive_failures = 0

    def record_failure(self) -> None:
        """Record a failed request."""
        with self._lock:
            self._consecutive_failures += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                # Any failure in half-open reopens the circuit
                self._open()
            elif self._state == CircuitState.CLOSED:
                if self._consecutive_failures >= self.config.failure_threshold:
                    self._open()

    def release(self) -> None:
        """Return a claimed half-open probe slot without recording an outcome.

        Used when an attempt ends for reasons unrelated to upstream health
        (caller cancellation, 4xx, malformed payload).
        """
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_requests > 0:
                self._half_open_requests -= 1

    def _open(self) -> None:
        """Transition to OPEN state."""
        self._state = CircuitState.OPEN
        self._open_until = self._clock() + self.config.cooldown
        self._half_open_requests = 0
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED after "
            f"{self._consecutive_failures} failures"
        )

    def _close(self) -> None:
        """Transition to CLOSED state."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._open_until = None
        self._half_open_requests = 0
        logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._open_until = None
            self._half_open_requests = 0
            self._last_failure_time = None
        logger.info(f"Circuit breaker '{self.service_id}' manually reset")

    def get_time_until_reset(self) -> float | None:
        """Get seconds until circuit may transition to half-open."""
        if self._state != CircuitState.OPEN or not self._open_until:
            return None

        remaining = (self._open_until - self._clock()).total_seconds()
        return max(0.0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "service_id": self.service_id,
            "state": self._state.value,
            "consecutive_failures": self._consecutive_failures,
            "last_failure": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "open_until": self._open_until.isoformat() if self._open_until else None,
            "time_until_reset": self.get_time_until_reset(),
        }
