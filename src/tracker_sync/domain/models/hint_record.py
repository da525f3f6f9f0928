"""Hint record domain model, as parsed from the upstream hints table."""

from dataclasses import dataclass


@dataclass(frozen=True)
class HintRecord:
    """One row of the upstream hints table."""

    finder: str  # Slot name that has the item
    receiver: str  # Slot name (or item link name) that receives the item
    item: str
    location: str
    entrance: str  # "Vanilla" without entrance randomization
    found: bool
