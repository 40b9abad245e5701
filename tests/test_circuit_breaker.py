"""Tests for CircuitBreaker state transitions."""

from __future__ import annotations

from datetime import timedelta

from catalog.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from tests.conftest import FakeClock


def make_breaker(clock: FakeClock, threshold: int = 5, cooldown: float = 60) -> CircuitBreaker:
    return CircuitBreaker(
        "tmdb",
        CircuitBreakerConfig(
            failure_threshold=threshold, cooldown=timedelta(seconds=cooldown)
        ),
        clock=clock,
    )


class TestCircuitBreakerTransitions:
    """Tests for CLOSED → OPEN → HALF_OPEN → CLOSED."""

    def test_starts_closed(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_attempt() is True

    def test_opens_after_threshold(self, clock: FakeClock) -> None:
        """Five consecutive failures open the breaker."""
        breaker = make_breaker(clock)
        for _ in range(4):
            breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.can_attempt() is False

    def test_success_resets_failure_count(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock)
        for _ in range(4):
            breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 1

    def test_blocks_until_cooldown(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()

        clock.advance(59)
        assert breaker.can_attempt() is False
        assert breaker.get_time_until_reset() == 1.0

    def test_half_open_after_cooldown(self, clock: FakeClock) -> None:
        """The first can_attempt() after the cooldown moves to HALF_OPEN."""
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()
        clock.advance(60)

        assert breaker.state == CircuitState.OPEN  # Reading state never transitions
        assert breaker.can_attempt() is True
        assert breaker.state == CircuitState.HALF_OPEN

    def test_half_open_allows_single_probe(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()
        clock.advance(60)

        assert breaker.can_attempt() is True
        assert breaker.can_attempt() is False

    def test_probe_success_closes(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock)
        for _ in range(5):
            breaker.record_failure()
        clock.advance(61)
        breaker.can_attempt()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    def test_probe_failure_reopens(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()
        clock.advance(60)
        breaker.can_attempt()

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.get_time_until_reset() == 60.0

    def test_release_returns_probe_slot(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()
        clock.advance(60)
        assert breaker.can_attempt() is True

        breaker.release()

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.can_attempt() is True


class TestCircuitBreakerStatus:
    """Tests for status reporting and manual reset."""

    def test_status_dict(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()

        status = breaker.get_status()

        assert status["service_id"] == "tmdb"
        assert status["state"] == "OPEN"
        assert status["consecutive_failures"] == 1
        assert status["last_failure"] == clock.now.isoformat()
        assert status["time_until_reset"] == 60.0

    def test_reset(self, clock: FakeClock) -> None:
        breaker = make_breaker(clock, threshold=1)
        breaker.record_failure()

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_status()["open_until"] is None
