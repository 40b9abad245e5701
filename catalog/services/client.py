"""
ServiceClient - Async HTTP transport for upstream JSON APIs.

Performs exactly one network attempt per call and translates every httpx
failure into the service error taxonomy. Retrying, caching and circuit
breaking are layered on top by the caller.
"""

from typing import Any

import httpx
from loguru import logger

from catalog.services.errors import (
    DecodeError,
    NetworkTransportError,
    NotFoundError,
    RequestTimeoutError,
    UpstreamRejectedError,
)


def parse_retry_after(response: httpx.Response) -> float | None:
    """Read a numeric Retry-After header, if any."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        logger.debug(f"Ignoring non-numeric Retry-After header: {value!r}")
        return None


class ServiceClient:
    """
    Thin async HTTP client with error mapping.

    Usage:
        async with ServiceClient(timeout=10.0) as client:
            data = await client.get_json(
                service_id="tmdb",
                url="https://api.themoviedb.org/3/movie/popular",
                params={"page": 1, "api_key": key},
            )
    """

    def __init__(
        self,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._timeout = timeout
        self._headers = headers or {}
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=self._headers,
                follow_redirects=True,
            )
        return self._http_client

    async def get_json(
        self,
        service_id: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        GET ``url`` and decode the JSON body.

        Raises:
            RequestTimeoutError: Transport timed out
            NetworkTransportError: Connection-level failure
            NotFoundError: HTTP 404
            UpstreamRejectedError: Any other HTTP error status
            DecodeError: Body is not valid JSON
        """
        client = await self._get_http_client()
        req_timeout = timeout or self._timeout

        try:
            response = await client.get(
                url, params=params, headers=headers, timeout=req_timeout
            )
            response.raise_for_status()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(service_id, req_timeout) from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code == 404:
                raise NotFoundError(
                    f"Resource not found at '{service_id}': {e.request.url.path}",
                    service_id=service_id,
                ) from e
            raise UpstreamRejectedError(
                service_id,
                status_code,
                detail=e.response.text,
                retry_after=parse_retry_after(e.response),
            ) from e

        except httpx.RequestError as e:
            raise NetworkTransportError(
                f"Transport error talking to '{service_id}': {e}",
                service_id=service_id,
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"Invalid JSON from '{service_id}': {e}", service_id=service_id
            ) from e

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
