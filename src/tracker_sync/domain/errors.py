"""Errors raised while synchronizing a tracker with its upstream source."""

from enum import Enum


class ErrorKind(str, Enum):
    """Coarse error categories that callers map to responses."""

    INVALID_UPSTREAM_URL = "invalid_upstream_url"
    UPSTREAM_NOT_ALLOWED = "upstream_not_allowed"
    UPSTREAM_NOT_FOUND = "upstream_not_found"
    TRANSPORT_FAILURE = "transport_failure"
    PARSE_FAILURE = "parse_failure"
    RECONCILIATION_INVARIANT_VIOLATION = "reconciliation_invariant_violation"
    STORE_FAILURE = "store_failure"


class TrackerUpdateError(Exception):
    """Base class for tracker synchronization failures."""

    kind: ErrorKind


class InvalidUpstreamUrlError(TrackerUpdateError):
    """The URL is malformed or does not end in a valid tracker ID."""

    kind = ErrorKind.INVALID_UPSTREAM_URL


class UpstreamNotAllowedError(TrackerUpdateError):
    """The URL is not under any configured upstream tracker prefix."""

    kind = ErrorKind.UPSTREAM_NOT_ALLOWED

    def __init__(self, url: str) -> None:
        super().__init__(f"the upstream URL {url!r} is not on the upstream allow-list")
        self.url = url


class UpstreamNotFoundError(TrackerUpdateError):
    """The upstream tracker does not exist."""

    kind = ErrorKind.UPSTREAM_NOT_FOUND

    def __init__(self, url: str) -> None:
        super().__init__(f"tracker not found: {url}")
        self.url = url


class UpstreamTransportError(TrackerUpdateError):
    """The upstream request failed for a reason other than not-found."""

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TrackerParseError(TrackerUpdateError):
    """The upstream HTML could not be parsed.

    ``row`` is the 1-based body row and ``column`` the header name, when the
    failure is tied to a particular cell.
    """

    kind = ErrorKind.PARSE_FAILURE

    def __init__(
        self,
        table: str,
        message: str,
        row: int | None = None,
        column: str | None = None,
    ) -> None:
        location = f"{table} table"
        if row is not None:
            location += f", row {row}"
        if column is not None:
            location += f", column {column!r}"
        super().__init__(f"failed to parse {location}: {message}")
        self.table = table
        self.row = row
        self.column = column


class ReconciliationError(TrackerUpdateError):
    """Upstream and stored state disagree in a way that cannot be reconciled."""

    kind = ErrorKind.RECONCILIATION_INVARIANT_VIOLATION


class SlotCountMismatchError(ReconciliationError):
    """The number of slots changed since the last synchronization."""

    def __init__(self, tracker: int, database: int) -> None:
        super().__init__(f"game count mismatch (tracker has {tracker}, database has {database})")
        self.tracker = tracker
        self.database = database


class SlotInformationMismatchError(ReconciliationError):
    """Immutable information about a slot changed."""

    def __init__(self, position: int) -> None:
        super().__init__(f"game {position} has mismatching information")
        self.position = position


class NumericConversionError(ReconciliationError):
    """An upstream number does not fit the store's column type."""

    def __init__(self, position: int) -> None:
        super().__init__(f"numeric conversion failure processing game {position}")
        self.position = position


class HintSlotMissingError(ReconciliationError):
    """A hint references a finder slot that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"a hint exists referencing the nonexistent game name {name!r}")
        self.name = name


class StoreError(TrackerUpdateError):
    """The underlying store failed."""

    kind = ErrorKind.STORE_FAILURE
