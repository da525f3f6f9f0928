"""Slot (game) domain model."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from tracker_sync.domain.models.statuses import (
    AvailabilityStatus,
    CompletionStatus,
    PingPreference,
    ProgressionStatus,
    TrackerGameStatus,
)


@dataclass(frozen=True)
class SlotIdentity:
    """Fields fixed for the lifetime of a slot.

    Synchronization checks these against the upstream tracker and refuses to
    continue if they differ.
    """

    position: int
    game: str
    checks_total: int


@dataclass(frozen=True)
class SlotSyncState:
    """Fields owned by synchronization."""

    name: str
    tracker_status: TrackerGameStatus
    checks_done: int
    last_activity: datetime | None
    completion_status: CompletionStatus = CompletionStatus.INCOMPLETE


@dataclass(frozen=True)
class SlotUserFields:
    """Fields owned by users; synchronization never writes them."""

    claimed_by_user_id: int | None = None
    discord_username: str | None = None
    discord_ping: PingPreference = PingPreference.NEVER
    availability_status: AvailabilityStatus = AvailabilityStatus.UNKNOWN
    progression_status: ProgressionStatus = ProgressionStatus.UNKNOWN
    last_checked: datetime | None = None
    notes: str = ""
    user_is_away: bool = False


@dataclass(frozen=True)
class Slot:
    """One participant's state within a tracker."""

    id: int | None
    tracker_id: int
    identity: SlotIdentity
    state: SlotSyncState
    user: SlotUserFields = field(default_factory=SlotUserFields)

    entity_name = "slot"

    # The upstream value drifts with its snapshot epoch; never audited.
    non_auditable_fields = frozenset({"last_activity"})

    @property
    def position(self) -> int:
        return self.identity.position

    @property
    def name(self) -> str:
        return self.state.name

    @property
    def checks_done(self) -> int:
        return self.state.checks_done

    @property
    def checks_total(self) -> int:
        return self.identity.checks_total

    @property
    def completion_status(self) -> CompletionStatus:
        return self.state.completion_status

    def columns(self) -> dict[str, Any]:
        """Flatten the slot into store column values, excluding ``id``."""
        return {
            "tracker_id": self.tracker_id,
            **asdict(self.identity),
            **asdict(self.state),
            **asdict(self.user),
        }

    def audit_fields(self) -> dict[str, Any]:
        """Return the auditable fields of this slot."""
        return {k: v for k, v in self.columns().items() if k not in self.non_auditable_fields}
