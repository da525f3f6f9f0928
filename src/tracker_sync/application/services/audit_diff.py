"""Fieldwise diffs of entities for the audit trail."""

import json
from datetime import datetime
from typing import Any, Protocol

from tracker_sync.domain.models import AuditEntry


class Auditable(Protocol):
    """An entity that can be diffed for auditing."""

    entity_name: str
    id: int | None

    def audit_fields(self) -> dict[str, Any]: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def build_fieldwise_diff(old: Auditable, new: Auditable) -> dict[str, dict[str, Any]]:
    """Compare the auditable fields of two versions of an entity.

    Returns:
        Mapping of changed field name to ``{"old": ..., "new": ...}``; empty if nothing changed.
    """
    old_fields = old.audit_fields()
    new_fields = new.audit_fields()
    return {
        name: {"old": old_fields[name], "new": value}
        for name, value in new_fields.items()
        if old_fields.get(name) != value
    }


def build_audit_entry(
    old: Auditable,
    new: Auditable,
    changed_at: datetime,
    actor_ip: str | None = None,
    actor_user_id: int | None = None,
) -> AuditEntry | None:
    """Build an audit entry for a change, or ``None`` if no auditable field changed."""
    if new.id is None:
        raise ValueError(f"cannot audit a {new.entity_name} that has not been stored")

    diff = build_fieldwise_diff(old, new)
    if not diff:
        return None

    return AuditEntry(
        entity=new.entity_name,
        entity_id=new.id,
        changed_at=changed_at,
        diff=json.dumps(diff, default=_json_default, sort_keys=True),
        actor_ip=actor_ip,
        actor_user_id=actor_user_id,
    )
