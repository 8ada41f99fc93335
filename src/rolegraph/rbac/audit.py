"""Append-only audit trail for role and assignment changes."""

from typing import Any, Iterable

from rolegraph.exceptions import AuditWriteError, PerformerRequiredError
from rolegraph.observability import (
    actor_id_var,
    emit_counter,
    get_logger,
    ip_address_var,
    user_agent_var,
)
from rolegraph.rbac.models import (
    AuditLogEntry,
    AuditLogPage,
    Provenance,
    Role,
    RoleAuditAction,
)
from rolegraph.rbac.store import RoleStore

logger = get_logger(__name__)

AUDIT_FAILURE_METRIC = "rolegraph.audit.write_failures"

# Fields compared when diffing a role update, in report order
DIFF_FIELDS = (
    "display_name",
    "description",
    "permissions",
    "parent_role_id",
    "is_active",
    "priority",
    "color",
    "icon",
)


def resolve_performer(performed_by_id: str | None) -> str:
    """Return the performer to record, falling back to the bound actor.

    Raises:
        PerformerRequiredError: If neither is set
    """
    performer = performed_by_id or actor_id_var.get()
    if not performer:
        raise PerformerRequiredError("performed_by_id is required for every mutation")
    return performer


def resolve_provenance(provenance: Provenance | None) -> Provenance:
    """Explicit provenance wins; otherwise use the origin bound by AuditContext."""
    if provenance is not None:
        return provenance
    return Provenance(ip_address=ip_address_var.get(), user_agent=user_agent_var.get())


def build_changes(
    previous: Role,
    updated: Role,
    fields: Iterable[str] = DIFF_FIELDS,
) -> dict[str, Any]:
    """Field-level diff between two versions of a role.

    ``previous`` must be the record read from the store, never a value
    supplied by the caller. Permission changes also list the keys added
    and removed.

    Returns:
        Mapping of field name to ``{"old": ..., "new": ...}``
    """
    changes: dict[str, Any] = {}
    for name in fields:
        old = getattr(previous, name)
        new = getattr(updated, name)
        if name == "permissions":
            added = [p for p in new if p not in old]
            removed = [p for p in old if p not in new]
            if added or removed:
                changes[name] = {
                    "old": list(old),
                    "new": list(new),
                    "added": added,
                    "removed": removed,
                }
        elif old != new:
            changes[name] = {"old": old, "new": new}
    return changes


class AuditTrail:
    """Writes and queries role audit entries.

    Writes are best-effort: a failed write is logged, counted and reported
    through the ``rolegraph.audit.write_failures`` metric, but never fails
    the mutation that triggered it.
    """

    def __init__(self, store: RoleStore, page_size: int = 50, max_page_size: int = 200) -> None:
        self.store = store
        self.page_size = page_size
        self.max_page_size = max_page_size
        self.failed_writes = 0

    async def log_role_audit(self, entry: AuditLogEntry) -> bool:
        """Append an audit entry.

        The insert runs in its own (nested) transaction so a failure here
        rolls back only the audit row.

        Returns:
            True if the entry was written
        """
        try:
            async with self.store.database.transaction():
                await self.store.insert_audit_log(entry)
        except Exception as exc:
            self.failed_writes += 1
            failure = AuditWriteError(
                f"Failed to log role audit: {entry.action.value} on {entry.role_id}"
            )
            failure.__cause__ = exc
            logger.error(
                str(failure),
                context={
                    "role_id": entry.role_id,
                    "action": entry.action.value,
                    "performed_by_id": entry.performed_by_id,
                },
                error=exc,
            )
            emit_counter(AUDIT_FAILURE_METRIC, {"action": entry.action.value})
            return False
        return True

    async def get_role_audit_logs(
        self,
        role_id: str | None = None,
        performed_by_id: str | None = None,
        action: RoleAuditAction | str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> AuditLogPage:
        """Query audit entries, newest first.

        Args:
            role_id: Only entries for this role
            performed_by_id: Only entries by this principal
            action: Only entries with this action
            page: 1-based page number
            limit: Page size, capped at the configured maximum
        """
        page = max(1, page)
        limit = min(max(1, limit or self.page_size), self.max_page_size)
        action = RoleAuditAction(action) if action else None

        logs = await self.store.query_audit_logs(
            role_id=role_id,
            performed_by_id=performed_by_id,
            action=action,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total = await self.store.count_audit_logs(
            role_id=role_id,
            performed_by_id=performed_by_id,
            action=action,
        )
        return AuditLogPage(logs=logs, total=total, page=page, limit=limit)
