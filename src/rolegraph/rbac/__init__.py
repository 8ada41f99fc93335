"""RBAC (Role-Based Access Control) module."""

from rolegraph.rbac.assignments import AssignmentManager
from rolegraph.rbac.audit import AuditTrail, build_changes
from rolegraph.rbac.cache import EffectivePermissionCache
from rolegraph.rbac.legacy import (
    LegacyRole,
    MigrationReport,
    legacy_role_has_permission,
    map_legacy_role,
    migrate_admins_to_new_role_system,
)
from rolegraph.rbac.manager import RoleManager, SeedResult
from rolegraph.rbac.models import (
    Admin,
    AuditLogEntry,
    AuditLogPage,
    CreateRoleInput,
    Provenance,
    Role,
    RoleAuditAction,
    RoleNode,
    RolePage,
    UpdateRoleInput,
)
from rolegraph.rbac.permissions import (
    REGISTRY_VERSION,
    Permission,
    RoleScope,
    is_valid_key,
    list_permissions,
)
from rolegraph.rbac.resolver import (
    DynamicGovernance,
    Governance,
    LegacyGovernance,
    PermissionResolver,
    governance_for,
)
from rolegraph.rbac.store import RoleStore

__all__ = [
    "Admin",
    "AssignmentManager",
    "AuditLogEntry",
    "AuditLogPage",
    "AuditTrail",
    "CreateRoleInput",
    "DynamicGovernance",
    "EffectivePermissionCache",
    "Governance",
    "LegacyGovernance",
    "LegacyRole",
    "MigrationReport",
    "Permission",
    "PermissionResolver",
    "Provenance",
    "REGISTRY_VERSION",
    "Role",
    "RoleAuditAction",
    "RoleManager",
    "RoleNode",
    "RolePage",
    "RoleScope",
    "RoleStore",
    "SeedResult",
    "UpdateRoleInput",
    "build_changes",
    "governance_for",
    "is_valid_key",
    "legacy_role_has_permission",
    "list_permissions",
    "map_legacy_role",
    "migrate_admins_to_new_role_system",
]
