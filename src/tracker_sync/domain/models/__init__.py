"""Domain models for tracker synchronization."""

from tracker_sync.domain.models.audit_entry import AuditEntry
from tracker_sync.domain.models.hint import Hint, HintKey
from tracker_sync.domain.models.hint_record import HintRecord
from tracker_sync.domain.models.room_status import RoomStatus
from tracker_sync.domain.models.slot import Slot, SlotIdentity, SlotSyncState, SlotUserFields
from tracker_sync.domain.models.slot_record import Checks, SlotRecord
from tracker_sync.domain.models.statuses import (
    AvailabilityStatus,
    CompletionStatus,
    HintClassification,
    PingPreference,
    ProgressionStatus,
    TrackerGameStatus,
)
from tracker_sync.domain.models.tracked_resource import TrackedResource
from tracker_sync.domain.models.upstream_response import UpstreamResponse

__all__ = [
    "AuditEntry",
    "AvailabilityStatus",
    "Checks",
    "CompletionStatus",
    "Hint",
    "HintClassification",
    "HintKey",
    "HintRecord",
    "PingPreference",
    "ProgressionStatus",
    "RoomStatus",
    "Slot",
    "SlotIdentity",
    "SlotRecord",
    "SlotSyncState",
    "SlotUserFields",
    "TrackedResource",
    "TrackerGameStatus",
    "UpstreamResponse",
]
