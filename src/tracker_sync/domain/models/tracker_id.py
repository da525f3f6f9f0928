"""URL-safe base64 encoded UUIDs used as tracker identifiers."""

import base64
import binascii
import re
import uuid

# 16 bytes encode to 22 characters of unpadded base64.
TRACKER_ID_LENGTH = 22

_TRACKER_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{22}")


def encode_tracker_id(value: uuid.UUID) -> str:
    """Encode a UUID as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(value.bytes).rstrip(b"=").decode("ascii")


def decode_tracker_id(value: str) -> uuid.UUID:
    """Decode an unpadded URL-safe base64 tracker ID.

    Only the canonical encoding is accepted: the upstream tracker tolerates
    trailing garbage and non-zero padding bits, which would otherwise map
    several distinct URLs onto one tracker.

    Raises:
        ValueError: If the value is not a canonical encoding of a UUID.
    """
    if not _TRACKER_ID_PATTERN.fullmatch(value):
        raise ValueError(f"invalid tracker ID {value!r}")

    try:
        raw = base64.urlsafe_b64decode(value + "==")
    except binascii.Error as e:
        raise ValueError(f"could not base64-decode tracker ID {value!r}: {e}") from e

    decoded = uuid.UUID(bytes=raw)
    if encode_tracker_id(decoded) != value:
        raise ValueError(f"non-canonical tracker ID {value!r}")
    return decoded


def is_valid_tracker_id(value: str) -> bool:
    """Check whether a string is a canonical tracker ID."""
    try:
        decode_tracker_id(value)
    except ValueError:
        return False
    return True


def new_tracker_id() -> str:
    """Generate a fresh random tracker ID."""
    return encode_tracker_id(uuid.uuid4())
