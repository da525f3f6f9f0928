"""Ports (interfaces) for the ports-and-adapters architecture."""

from tracker_sync.domain.ports.tracker_store import TrackerStore, TrackerTransaction
from tracker_sync.domain.ports.upstream_client import UpstreamClient

__all__ = [
    "TrackerStore",
    "TrackerTransaction",
    "UpstreamClient",
]
