"""Audit entry domain model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AuditEntry:
    """A recorded change to one entity.

    Actor fields are ``None`` for changes made by synchronization, which is how
    automated updates are told apart from user edits.
    """

    entity: str
    entity_id: int
    changed_at: datetime
    diff: str  # JSON object: {"field": {"old": ..., "new": ...}}
    actor_ip: str | None = None
    actor_user_id: int | None = None
    id: int | None = None
