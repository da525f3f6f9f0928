"""Lookup of the last port used by a tracker's multiworld room."""

import logging
from datetime import datetime, timedelta
from urllib.parse import urlsplit

from tracker_sync.domain.models import RoomStatus, TrackedResource
from tracker_sync.domain.ports import UpstreamClient

logger = logging.getLogger(__name__)

ROOM_PATH_PREFIX = "/room/"
ROOM_STATUS_PATH = "/api/room_status/"

# Never check a room's port more often than this.
MIN_PORT_CHECK_INTERVAL = timedelta(minutes=5)

_DEFAULT_PORTS = {"http": 80, "https": 443}


class InvalidRoomLinkError(ValueError):
    """The room link is malformed or points to a different host than the tracker."""


def _origin(url: str) -> tuple[str, str | None, int | None]:
    parts = urlsplit(url)
    return parts.scheme, parts.hostname, parts.port or _DEFAULT_PORTS.get(parts.scheme)


def extract_room_id(room_link: str, tracker_url: str) -> str | None:
    """Extract the room ID from a room link on the tracker's host.

    Args:
        room_link: URL of the form ``<origin>/room/<id>``.
        tracker_url: The tracker's upstream URL.

    Returns:
        The room ID, or ``None`` if the link is not a room on the same
        scheme, host and port as the tracker.
    """
    try:
        if _origin(room_link) != _origin(tracker_url):
            return None
    except ValueError:
        return None

    path = urlsplit(room_link).path
    if not path.startswith(ROOM_PATH_PREFIX):
        return None
    room_id = path.removeprefix(ROOM_PATH_PREFIX)
    if not room_id or "/" in room_id:
        return None
    return room_id


def room_status_url(tracker_url: str, room_id: str) -> str:
    """Build the room status API URL on the tracker's host."""
    parts = urlsplit(tracker_url)
    return f"{parts.scheme}://{parts.netloc}{ROOM_STATUS_PATH}{room_id}"


def is_port_check_due(tracker: TrackedResource, now: datetime) -> bool:
    """Whether the tracker has a room link and its next port check is due."""
    if not tracker.room_link:
        return False
    return tracker.next_port_check_at is None or tracker.next_port_check_at <= now


async def fetch_last_port(
    client: UpstreamClient, room_link: str, tracker_url: str, now: datetime
) -> tuple[int, datetime]:
    """Fetch the last port of a room and compute when to check it again.

    The next check happens once the room would have timed out, but no
    sooner than five minutes from ``now``.

    Args:
        client: Upstream client for the room status API.
        room_link: The tracker's room link.
        tracker_url: The tracker's upstream URL.
        now: The current time.

    Returns:
        The last port and the time of the next check.

    Raises:
        InvalidRoomLinkError: If the room link is not valid for the tracker.
        UpstreamTransportError: If the room status could not be fetched.
        pydantic.ValidationError: If the room status response is malformed.
    """
    room_id = extract_room_id(room_link, tracker_url)
    if room_id is None:
        raise InvalidRoomLinkError(f"the room link {room_link!r} is invalid")

    logger.info(f"Requesting port from room {room_link} for tracker {tracker_url}")
    data = await client.get_json(room_status_url(tracker_url, room_id))
    status = RoomStatus.model_validate(data)

    next_check = max(
        status.last_activity + timedelta(seconds=status.timeout_seconds),
        now + MIN_PORT_CHECK_INTERVAL,
    )
    return status.last_port, next_check
