"""HTTP client for the upstream tracker host."""

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any

import aiohttp

from tracker_sync.adapters.upstream.request_logger import (
    log_upstream_request,
    log_upstream_response,
)
from tracker_sync.domain.errors import UpstreamTransportError
from tracker_sync.domain.models import UpstreamResponse

if TYPE_CHECKING:
    from aiohttp import ClientSession

logger = logging.getLogger(__name__)


class AiohttpUpstreamClient:
    """Upstream client backed by a shared aiohttp session.

    Every request is bounded by a total timeout. Network failures and
    timeouts surface as :class:`UpstreamTransportError`; non-success
    statuses are returned to the caller by :meth:`get`.
    """

    def __init__(self, session: "ClientSession", timeout_seconds: float) -> None:
        """Initialize the client.

        Args:
            session: The aiohttp session to issue requests with.
            timeout_seconds: Total timeout per request.
        """
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def get(self, url: str) -> UpstreamResponse:
        """GET a URL and return its status and body.

        Args:
            url: The URL to fetch.

        Returns:
            The response status and decoded body.

        Raises:
            UpstreamTransportError: If no response could be obtained.
        """
        log_upstream_request("GET", url)
        started = time.monotonic()

        try:
            async with self._session.get(url, timeout=self._timeout) as response:
                status = response.status
                body = await response.text()
        except asyncio.TimeoutError as e:
            logger.warning(f"Request to {url} timed out after {self._timeout.total}s")
            raise UpstreamTransportError(f"request to {url} timed out") from e
        except (aiohttp.ClientError, UnicodeDecodeError) as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise UpstreamTransportError(f"request to {url} failed: {e}") from e

        log_upstream_response(url, status, len(body), time.monotonic() - started)
        return UpstreamResponse(url=url, status=status, body=body)

    async def get_json(self, url: str) -> Any:
        """GET a URL and decode a successful JSON response.

        Args:
            url: The URL to fetch.

        Returns:
            The decoded JSON document.

        Raises:
            UpstreamTransportError: On any failure, including non-success status.
        """
        response = await self.get(url)
        if not response.ok:
            raise UpstreamTransportError(
                f"{url} returned status {response.status}", status_code=response.status
            )

        try:
            return json.loads(response.body)
        except ValueError as e:
            raise UpstreamTransportError(f"{url} returned invalid JSON: {e}") from e
