"""Hint domain model."""

from dataclasses import dataclass, fields
from typing import Any

from tracker_sync.domain.models.statuses import HintClassification

HintKey = tuple[int, int | None, str, str, str, str]


@dataclass(frozen=True)
class Hint:
    """An item/location link between a finder slot and a receiver.

    ``receiver_slot_id`` is ``None`` when the item goes to an item link shared
    by several slots; ``item_link_name`` then holds the upstream receiver label
    and is empty otherwise.
    """

    id: int | None
    finder_slot_id: int
    receiver_slot_id: int | None
    item_link_name: str
    item: str
    location: str
    entrance: str
    found: bool
    classification: HintClassification = HintClassification.UNSET

    entity_name = "hint"

    def key(self) -> HintKey:
        """Composite identity; several hints may legitimately share one."""
        return (
            self.finder_slot_id,
            self.receiver_slot_id,
            self.item_link_name,
            self.item,
            self.location,
            self.entrance,
        )

    def columns(self) -> dict[str, Any]:
        """Store column values, excluding ``id``."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "id"}

    def audit_fields(self) -> dict[str, Any]:
        """Return the auditable fields of this hint."""
        return self.columns()
