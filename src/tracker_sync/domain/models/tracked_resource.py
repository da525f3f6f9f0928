"""Tracked resource (tracker) domain model."""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from tracker_sync.domain.models.statuses import PingPreference


@dataclass(frozen=True)
class TrackedResource:
    """One upstream tracker mirrored into the local store.

    ``id`` is the store's row ID and is ``None`` until the tracker is created.
    ``tracker_id`` is the opaque ID exposed to clients.
    """

    id: int | None
    tracker_id: str
    upstream_url: str
    last_synchronized_at: datetime
    title: str = ""
    description: str = ""
    owner_user_id: int | None = None
    lock_settings: bool = False
    global_ping_policy: PingPreference | None = None
    room_link: str = ""
    last_port: int | None = None
    next_port_check_at: datetime | None = None
    inactivity_threshold_yellow_hours: int = 24
    inactivity_threshold_red_hours: int = 48
    require_authentication_to_claim: bool = False

    entity_name = "tracker"

    # Re-derived by every synchronization; excluded from audit diffs.
    non_auditable_fields = frozenset({"last_synchronized_at", "last_port", "next_port_check_at"})

    def columns(self) -> dict[str, Any]:
        """Store column values, excluding ``id``."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "id"}

    def audit_fields(self) -> dict[str, Any]:
        """Return the auditable fields of this tracker."""
        return {k: v for k, v in self.columns().items() if k not in self.non_auditable_fields}
