"""SQLite tracker store adapter."""

from tracker_sync.adapters.sqlite_store.sqlite_tracker_store import (
    SqliteTrackerStore,
    SqliteTrackerTransaction,
)

__all__ = ["SqliteTrackerStore", "SqliteTrackerTransaction"]
