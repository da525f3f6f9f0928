"""Adapters layer - external system integrations."""

from tracker_sync.adapters.cache import SingleFlightCache
from tracker_sync.adapters.config import AppConfig
from tracker_sync.adapters.sqlite_store import SqliteTrackerStore
from tracker_sync.adapters.tracker_html import parse_tracker_html
from tracker_sync.adapters.upstream import AiohttpUpstreamClient

__all__ = [
    "AiohttpUpstreamClient",
    "AppConfig",
    "SingleFlightCache",
    "SqliteTrackerStore",
    "parse_tracker_html",
]
