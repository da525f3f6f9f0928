"""Protocol for parsing upstream tracker pages."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tracker_sync.domain.models import HintRecord, SlotRecord


class TrackerHtmlParserProtocol(Protocol):
    """Protocol for turning a tracker page into slot and hint records."""

    def __call__(self, html: str) -> "tuple[list[SlotRecord], list[HintRecord]]":
        """Parse a tracker page.

        Raises:
            TrackerParseError: If the page is malformed.
        """
        ...
