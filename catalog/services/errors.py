"""
Service layer exceptions.

Every failure the data layer can surface is a ServiceError subclass. The
`retryable` flag drives the RetryExecutor; `user_message` is what a UI
collaborator should show (None means "show nothing").
"""

GENERIC_FAILURE_MESSAGE = "Something went wrong while loading movies. Please retry."
DEGRADED_MESSAGE = "The movie service is degraded, try again shortly."


class ServiceError(Exception):
    """Base exception for service layer errors."""

    retryable: bool = False
    user_message: str | None = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class NetworkTransportError(ServiceError):
    """Connection-level failure (DNS, refused, reset)."""

    retryable = True


class RequestTimeoutError(ServiceError):
    """Request timed out."""

    retryable = True

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class RequestCancelledError(ServiceError):
    """The caller no longer wants the result."""

    user_message = None

    def __init__(self, service_id: str | None = None):
        super().__init__("Request cancelled by caller", service_id=service_id)


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    user_message = DEGRADED_MESSAGE

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for service '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class UpstreamRejectedError(ServiceError):
    """Upstream answered with an HTTP error status."""

    def __init__(
        self,
        service_id: str,
        status_code: int,
        detail: str = "",
        retry_after: float | None = None,
    ):
        self.status_code = status_code
        self.retry_after = retry_after
        msg = f"HTTP {status_code} from service '{service_id}'"
        if detail:
            msg += f": {detail[:200]}"
        super().__init__(msg, service_id=service_id)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code >= 500 or self.status_code == 429


class NotFoundError(ServiceError):
    """Requested resource does not exist upstream or in the offline catalog."""

    user_message = "That movie could not be found."


class DecodeError(ServiceError):
    """Upstream payload was malformed."""


def describe_error(exc: BaseException) -> str | None:
    """Map an exception to the message a UI should show, or None to stay silent."""
    if isinstance(exc, ServiceError):
        return exc.user_message
    return GENERIC_FAILURE_MESSAGE
