"""
Audit trail for marketplace entity changes.

Every mutation made through a service is logged here. The audit log is:
- Append-only (entries never modified or deleted)
- Actor-attributed (who made the change, passed explicitly)
- Detailed (captures old and new values)

Because nothing in the marketplace is physically deleted, the audit log plus
the entity tables reproduce every historical dashboard figure.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from clients.store import RecordStore
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    TRANSITION = "transition"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to updated_at and version)

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at", "version"}
    changes = {}

    all_keys = set(old.keys()) | set(new.keys())
    for key in all_keys:
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Append-only audit writer over the record store.

    Always pass model_dump(mode="json") output so ids, dates and enums are
    stored as JSON-compatible values.

    Usage:
        audit = AuditLogger(store)

        audit.log_change(
            actor_id=actor.id,
            entity_type="task",
            entity_id=task.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")}
        )

        history = audit.get_entity_history("task", task.id)
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def log_change(
        self,
        actor_id: UUID,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
    ) -> None:
        """
        Log an entity change.

        Args:
            actor_id: User who made the change
            entity_type: Type of entity ("task", "booking", etc.)
            entity_id: ID of the entity
            action: The action performed
            changes: The changes made (format depends on action)

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE / TRANSITION: {"field": {"old": old_val, "new": new_val}, ...}
        """
        self.store.create(
            "audit_log",
            {
                "id": uuid4(),
                "user_id": actor_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action.value,
                "changes": changes,
                "created_at": now_utc(),
            },
        )

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID
    ) -> list[dict[str, Any]]:
        """
        Get full audit history for an entity.

        Returns:
            List of audit entries, newest first.
        """
        return self.store.list(
            "audit_log",
            filters={"entity_type": entity_type, "entity_id": entity_id},
            order_by=("-created_at",),
        )
