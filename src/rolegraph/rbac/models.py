"""Role, admin and audit records."""

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from rolegraph.protocols.database import Row
from rolegraph.rbac.permissions import RoleScope

ROLE_NAME_PATTERN = r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$"


def _load_json(value: Any, default: Any) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


class RoleAuditAction(str, Enum):
    """Audit log actions."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    PERMISSIONS_CHANGED = "PERMISSIONS_CHANGED"
    ACTIVATED = "ACTIVATED"
    DEACTIVATED = "DEACTIVATED"
    DELETED = "DELETED"
    ADMIN_ASSIGNED = "ADMIN_ASSIGNED"
    ADMIN_UNASSIGNED = "ADMIN_UNASSIGNED"


@dataclass
class Role:
    """A persisted role."""

    id: str
    name: str
    display_name: str
    scope: RoleScope
    permissions: list[str] = field(default_factory=list)
    description: str | None = None
    parent_role_id: str | None = None
    priority: int = 0
    color: str | None = None
    icon: str | None = None
    is_system: bool = False
    is_active: bool = True
    created_by_id: str | None = None
    created_at: float = 0.0
    updated_at: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Snapshot used for audit ``previous_state``/``new_state``."""
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "scope": self.scope.value,
            "permissions": list(self.permissions),
            "parent_role_id": self.parent_role_id,
            "priority": self.priority,
            "color": self.color,
            "icon": self.icon,
            "is_system": self.is_system,
            "is_active": self.is_active,
            "created_by_id": self.created_by_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: Row) -> "Role":
        """Create from database row."""
        return cls(
            id=row.id,
            name=row.name,
            display_name=row.display_name,
            description=row.description,
            scope=RoleScope(row.scope),
            permissions=_load_json(row.permissions, []),
            parent_role_id=row.parent_role_id,
            priority=row.priority or 0,
            color=row.color,
            icon=row.icon,
            is_system=bool(row.is_system),
            is_active=bool(row.is_active),
            created_by_id=row.created_by_id,
            created_at=row.created_at or 0.0,
            updated_at=row.updated_at or 0.0,
        )


@dataclass
class Admin:
    """An administrator principal.

    ``role`` is the legacy flat role; it governs the admin only while
    ``admin_role_id`` is unset.
    """

    id: str
    email: str
    name: str | None = None
    role: str | None = None
    admin_role_id: str | None = None
    created_at: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "admin_role_id": self.admin_role_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Row) -> "Admin":
        """Create from database row."""
        return cls(
            id=row.id,
            email=row.email,
            name=row.name,
            role=row.role,
            admin_role_id=row.admin_role_id,
            created_at=row.created_at or 0.0,
        )


@dataclass
class AuditLogEntry:
    """An immutable audit record of a role or assignment mutation."""

    role_id: str
    action: RoleAuditAction
    performed_by_id: str
    previous_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None
    changes: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: str | None = None
    created_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "role_id": self.role_id,
            "action": self.action.value,
            "performed_by_id": self.performed_by_id,
            "previous_state": self.previous_state,
            "new_state": self.new_state,
            "changes": self.changes,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Row) -> "AuditLogEntry":
        """Create from database row."""
        return cls(
            id=row.id,
            role_id=row.role_id,
            action=RoleAuditAction(row.action),
            performed_by_id=row.performed_by_id,
            previous_state=_load_json(row.previous_state, None),
            new_state=_load_json(row.new_state, None),
            changes=_load_json(row.changes, None),
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class Provenance:
    """Caller-supplied request origin, recorded verbatim in audit entries."""

    ip_address: str | None = None
    user_agent: str | None = None


NO_PROVENANCE = Provenance()


class CreateRoleInput(BaseModel):
    """Fields accepted when creating a role."""

    name: str = Field(min_length=1, max_length=64, pattern=ROLE_NAME_PATTERN)
    display_name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    scope: RoleScope
    permissions: list[str] = Field(default_factory=list)
    parent_role_id: str | None = None
    color: str | None = None
    icon: str | None = None
    is_system: bool = False
    priority: int = 0
    created_by_id: str | None = None


class UpdateRoleInput(BaseModel):
    """Partial role update.

    Only fields explicitly passed are applied. Passing
    ``parent_role_id=None`` detaches the role from its parent; omitting it
    leaves the parent unchanged.
    """

    display_name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    permissions: list[str] | None = None
    parent_role_id: str | None = None
    color: str | None = None
    icon: str | None = None
    is_active: bool | None = None
    priority: int | None = None

    def supplied(self, name: str) -> bool:
        """Whether the caller passed ``name``, even as None."""
        return name in self.model_fields_set


@dataclass
class RolePage:
    """A page of roles."""

    roles: list[Role]
    total: int
    page: int
    limit: int
    admin_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class AuditLogPage:
    """A page of audit entries, newest first."""

    logs: list[AuditLogEntry]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class RoleNode:
    """A role in the hierarchy tree."""

    role: Role
    admin_count: int = 0
    children: list["RoleNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary."""
        data = self.role.to_dict()
        data["admin_count"] = self.admin_count
        data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(frozen=True)
class ResolvedPermissions:
    """Effective permissions of a role: its own keys plus every ancestor's."""

    role_id: str
    scope: RoleScope
    permissions: frozenset[str]
