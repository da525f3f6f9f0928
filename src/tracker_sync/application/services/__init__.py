"""Application services."""

from tracker_sync.application.services.audit_diff import build_audit_entry, build_fieldwise_diff
from tracker_sync.application.services.completion_status import (
    auto_completion_status,
    merge_completion_status,
    update_completion_status,
)
from tracker_sync.application.services.room_port import extract_room_id, fetch_last_port
from tracker_sync.application.services.tracker_reconciler import TrackerReconciler
from tracker_sync.application.services.tracker_synchronizer import TrackerSynchronizer

__all__ = [
    "TrackerReconciler",
    "TrackerSynchronizer",
    "auto_completion_status",
    "build_audit_entry",
    "build_fieldwise_diff",
    "extract_room_id",
    "fetch_last_port",
    "merge_completion_status",
    "update_completion_status",
]
