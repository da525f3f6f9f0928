"""Domain layer - core models, errors and ports."""

from tracker_sync.domain.errors import ErrorKind, TrackerUpdateError
from tracker_sync.domain.models import (
    Hint,
    HintRecord,
    Slot,
    SlotRecord,
    TrackedResource,
)
from tracker_sync.domain.ports import TrackerStore, TrackerTransaction, UpstreamClient

__all__ = [
    "ErrorKind",
    "Hint",
    "HintRecord",
    "Slot",
    "SlotRecord",
    "TrackedResource",
    "TrackerStore",
    "TrackerTransaction",
    "TrackerUpdateError",
    "UpstreamClient",
]
