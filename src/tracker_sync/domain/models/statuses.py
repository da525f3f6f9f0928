"""Enumerations shared by trackers, slots and hints."""

from enum import Enum


class TrackerGameStatus(str, Enum):
    """Connection/play status of a slot as reported by the upstream tracker."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    READY = "ready"
    PLAYING = "playing"
    GOAL_COMPLETED = "goal_completed"

    @classmethod
    def from_label(cls, label: str) -> "TrackerGameStatus":
        """Map the label shown in the upstream checks table to a status.

        Raises:
            ValueError: If the label is not a known upstream status.
        """
        try:
            return _STATUS_LABELS[label]
        except KeyError:
            raise ValueError(f"could not parse tracker game status {label!r}") from None


_STATUS_LABELS = {
    "Disconnected": TrackerGameStatus.DISCONNECTED,
    "Connected": TrackerGameStatus.CONNECTED,
    "Ready": TrackerGameStatus.READY,
    "Playing": TrackerGameStatus.PLAYING,
    "Goal Completed": TrackerGameStatus.GOAL_COMPLETED,
}


class CompletionStatus(str, Enum):
    """How far along a slot is, combining automatic and manual signals."""

    INCOMPLETE = "incomplete"
    ALL_CHECKS = "all_checks"
    GOAL = "goal"
    DONE = "done"
    RELEASED = "released"


class PingPreference(str, Enum):
    """How a slot's owner wants to be pinged."""

    LIBERALLY = "liberally"
    SPARINGLY = "sparingly"
    HINTS = "hints"
    SEE_NOTES = "see_notes"
    NEVER = "never"


class AvailabilityStatus(str, Enum):
    """Whether a slot is open to be claimed."""

    UNKNOWN = "unknown"
    OPEN = "open"
    CLAIMED = "claimed"
    PUBLIC = "public"


class ProgressionStatus(str, Enum):
    """Manual progression marker for a slot."""

    UNKNOWN = "unknown"
    UNBLOCKED = "unblocked"
    BK = "bk"


class HintClassification(str, Enum):
    """User classification of a hint.

    ``UNSET`` is only ever written by synchronization; ``UNKNOWN`` is an
    explicit user assertion.
    """

    UNSET = "unset"
    UNKNOWN = "unknown"
    CRITICAL = "critical"
    PROGRESSION = "progression"
    QOL = "qol"
    TRASH = "trash"
