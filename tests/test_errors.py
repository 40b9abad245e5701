"""Tests for the service error taxonomy."""

from __future__ import annotations

import pytest

from catalog.services.errors import (
    DEGRADED_MESSAGE,
    GENERIC_FAILURE_MESSAGE,
    CircuitOpenError,
    DecodeError,
    NetworkTransportError,
    NotFoundError,
    RequestCancelledError,
    RequestTimeoutError,
    ServiceError,
    UpstreamRejectedError,
    describe_error,
)


class TestRetryable:
    """Tests for retry classification."""

    @pytest.mark.parametrize(
        "error, retryable",
        [
            (NetworkTransportError("reset"), True),
            (RequestTimeoutError("tmdb", 10.0), True),
            (UpstreamRejectedError("tmdb", 500), True),
            (UpstreamRejectedError("tmdb", 429), True),
            (UpstreamRejectedError("tmdb", 401), False),
            (NotFoundError("gone"), False),
            (DecodeError("bad"), False),
            (RequestCancelledError(), False),
            (CircuitOpenError("tmdb", 30), False),
        ],
    )
    def test_classification(self, error: ServiceError, retryable: bool) -> None:
        assert error.retryable is retryable


class TestDescribeError:
    """Tests for user-facing messages."""

    def test_cancellation_is_silent(self) -> None:
        assert describe_error(RequestCancelledError()) is None

    def test_open_circuit_is_degraded(self) -> None:
        assert describe_error(CircuitOpenError("tmdb", 12.5)) == DEGRADED_MESSAGE

    def test_not_found(self) -> None:
        assert describe_error(NotFoundError("gone")) == "That movie could not be found."

    def test_unknown_exception(self) -> None:
        assert describe_error(RuntimeError("boom")) == GENERIC_FAILURE_MESSAGE

    def test_upstream_detail_is_truncated(self) -> None:
        error = UpstreamRejectedError("tmdb", 500, detail="x" * 500)
        assert len(str(error)) < 260
