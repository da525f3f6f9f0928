"""Utility for logging upstream requests when TRACKER_SYNC_LOG_REQUESTS is enabled."""

import logging
import os

logger = logging.getLogger(__name__)


def should_log_requests() -> bool:
    """Check if request logging is enabled via TRACKER_SYNC_LOG_REQUESTS environment variable."""
    return os.getenv("TRACKER_SYNC_LOG_REQUESTS", "").lower() == "true"


def log_upstream_request(method: str, url: str) -> None:
    """Log an outgoing request if request logging is enabled.

    Args:
        method: HTTP method (GET, POST, etc.).
        url: Request URL.
    """
    if not should_log_requests():
        return
    logger.info(f"Upstream request: {method} {url}")


def log_upstream_response(url: str, status: int, body_length: int, elapsed_seconds: float) -> None:
    """Log a received response if request logging is enabled.

    Args:
        url: Request URL.
        status: HTTP status code.
        body_length: Length of the decoded body in characters.
        elapsed_seconds: Time taken by the request.
    """
    if not should_log_requests():
        return
    logger.info(
        f"Upstream response: {url} -> {status} ({body_length} chars in {elapsed_seconds:.3f}s)"
    )
