"""Upstream tracker host adapters."""

from tracker_sync.adapters.upstream.http_client import AiohttpUpstreamClient

__all__ = ["AiohttpUpstreamClient"]
