"""Slot record domain model, as parsed from the upstream checks table."""

from dataclasses import dataclass
from datetime import timedelta

from tracker_sync.domain.models.statuses import TrackerGameStatus


def _is_ascii_number(value: str) -> bool:
    return value.isascii() and value.isdecimal()


@dataclass(frozen=True)
class Checks:
    """Completed and total check counts."""

    completed: int
    total: int

    @classmethod
    def parse(cls, value: str) -> "Checks":
        """Parse a ``"<completed>/<total>"`` string.

        Raises:
            ValueError: If the value is not two non-negative integers separated by a slash.
        """
        completed, sep, total = value.partition("/")
        if not sep or not _is_ascii_number(completed) or not _is_ascii_number(total):
            raise ValueError(f"failed to parse checks {value!r}")
        return cls(completed=int(completed), total=int(total))

    @property
    def all_complete(self) -> bool:
        """Whether every check has been sent."""
        return self.completed >= self.total


@dataclass(frozen=True)
class SlotRecord:
    """One row of the upstream checks table."""

    # Upstream positions should be sequential from 1, but nothing enforces it.
    position: int
    name: str
    game: str
    status: TrackerGameStatus
    checks: Checks
    # Elapsed time before the upstream snapshot was generated, not a wall-clock
    # time. The snapshot epoch is unknown and drifts between requests.
    last_activity: timedelta | None
