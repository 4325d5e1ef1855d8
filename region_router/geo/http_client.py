"""HTTP client for IP lookup services with hard per-request timeouts."""

import asyncio
from typing import Any, Optional

import httpx
import structlog

from region_router.errors import DetectionError

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "User-Agent": "region-router/1.0",
    "Accept": "application/json",
}


class LookupHttpClient:
    """Fetches JSON from lookup services, one attempt per call.

    No retries happen here: a failed attempt is reported as a
    ``DetectionError`` and the detection chain moves on to the next service.
    """

    def __init__(self, headers: Optional[dict] = None):
        """Initialize the HTTP client.

        Args:
            headers: Extra headers merged over the defaults
        """
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}

    async def get_json(self, url: str, timeout_ms: int, strategy: str) -> dict[str, Any]:
        """Fetch a URL and decode its JSON object body.

        The whole request (connect, send, read) is bounded by ``timeout_ms``.

        Args:
            url: URL to fetch
            timeout_ms: Wall-clock budget for the request in milliseconds
            strategy: Name of the calling strategy, used in errors

        Returns:
            Decoded JSON object

        Raises:
            DetectionError: On timeout, transport error, non-2xx status or a
                body that is not a JSON object
        """
        timeout = timeout_ms / 1000

        try:
            response = await asyncio.wait_for(self._fetch(url, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise DetectionError(strategy, f"timeout after {timeout_ms}ms")
        except httpx.ConnectError as e:
            # DNS errors, connection refused, etc.
            raise DetectionError(strategy, f"connection error: {e}")
        except httpx.HTTPError as e:
            raise DetectionError(strategy, f"http error: {e}")

        logger.debug("lookup_response", strategy=strategy, url=url, status_code=response.status_code)

        if response.status_code == 429:
            raise DetectionError(strategy, "rate limited (HTTP 429)")
        if not 200 <= response.status_code < 300:
            raise DetectionError(
                strategy,
                f"HTTP {response.status_code}",
                retryable=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError:
            raise DetectionError(strategy, "response is not valid JSON", retryable=False)

        if not isinstance(data, dict):
            raise DetectionError(strategy, "response is not a JSON object", retryable=False)

        return data

    async def _fetch(self, url: str, timeout: float) -> httpx.Response:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await client.get(url, headers=self.headers)
