"""Upstream HTTP client port."""

from typing import Any, Protocol

from tracker_sync.domain.models import UpstreamResponse


class UpstreamClient(Protocol):
    """Port for fetching data from the upstream tracker host."""

    async def get(self, url: str) -> UpstreamResponse:
        """GET a URL and return its status and body.

        Raises:
            UpstreamTransportError: If no response could be obtained.
        """
        ...

    async def get_json(self, url: str) -> Any:
        """GET a URL and decode a successful JSON response.

        Raises:
            UpstreamTransportError: On any failure, including non-success status.
        """
        ...
