"""Persistence queries for roles, admins, permissions and audit logs.

All SQL the engine issues lives here. Managers own validation and
transactions; the store only reads and writes rows.
"""

import json
import time
from pathlib import Path
from typing import Any, Iterable
from uuid import uuid4

from rolegraph.protocols import Database
from rolegraph.rbac.models import Admin, AuditLogEntry, Role, RoleAuditAction
from rolegraph.rbac.permissions import REGISTRY_VERSION, Permission, RoleScope

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_ROLE_COLUMNS = (
    "id, name, display_name, description, scope, permissions, parent_role_id, "
    "priority, color, icon, is_system, is_active, created_by_id, created_at, updated_at"
)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RoleStore:
    """Row-level access to the RBAC tables."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def initialize_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        await self.database.execute_script(SCHEMA_PATH.read_text())

    # Roles

    async def get_role(self, role_id: str) -> Role | None:
        rows = await self.database.execute(
            f"SELECT {_ROLE_COLUMNS} FROM admin_roles WHERE id = :id",
            {"id": role_id},
        )
        return Role.from_row(rows[0]) if rows else None

    async def get_role_by_name(self, name: str) -> Role | None:
        rows = await self.database.execute(
            f"SELECT {_ROLE_COLUMNS} FROM admin_roles WHERE name = :name",
            {"name": name},
        )
        return Role.from_row(rows[0]) if rows else None

    async def get_roles_by_names(self, names: Iterable[str]) -> dict[str, Role]:
        """Fetch roles keyed by name; missing names are absent from the result."""
        names = list(names)
        if not names:
            return {}
        placeholders = ", ".join(f":n{i}" for i in range(len(names)))
        rows = await self.database.execute(
            f"SELECT {_ROLE_COLUMNS} FROM admin_roles WHERE name IN ({placeholders})",
            {f"n{i}": name for i, name in enumerate(names)},
        )
        return {row.name: Role.from_row(row) for row in rows}

    async def get_parent_role_id(self, role_id: str) -> tuple[bool, str | None]:
        """Read a role's parent pointer straight from the table.

        Returns:
            (exists, parent_role_id)
        """
        rows = await self.database.execute(
            "SELECT parent_role_id FROM admin_roles WHERE id = :id",
            {"id": role_id},
        )
        if not rows:
            return False, None
        return True, rows[0].parent_role_id

    def _role_filters(
        self,
        scope: RoleScope | None,
        is_active: bool | None,
        search: str | None,
    ) -> tuple[str, dict[str, Any]]:
        clauses: list[str] = []
        params: dict[str, Any] = {}
        if scope is not None:
            clauses.append("scope = :scope")
            params["scope"] = RoleScope(scope).value
        if is_active is not None:
            clauses.append("is_active = :is_active")
            params["is_active"] = int(is_active)
        if search:
            clauses.append(
                "(LOWER(name) LIKE :search ESCAPE '\\' "
                "OR LOWER(display_name) LIKE :search ESCAPE '\\' "
                "OR LOWER(COALESCE(description, '')) LIKE :search ESCAPE '\\')"
            )
            params["search"] = f"%{_escape_like(search.lower())}%"
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def list_roles(
        self,
        scope: RoleScope | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Role]:
        """List roles ordered by priority desc, then display name asc."""
        where, params = self._role_filters(scope, is_active, search)
        query = (
            f"SELECT {_ROLE_COLUMNS} FROM admin_roles {where} "
            "ORDER BY priority DESC, display_name ASC, name ASC"
        )
        if limit is not None:
            query += " LIMIT :limit OFFSET :offset"
            params.update({"limit": limit, "offset": offset})
        rows = await self.database.execute(query, params)
        return [Role.from_row(row) for row in rows]

    async def count_roles(
        self,
        scope: RoleScope | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> int:
        where, params = self._role_filters(scope, is_active, search)
        rows = await self.database.execute(
            f"SELECT COUNT(*) AS total FROM admin_roles {where}", params
        )
        return rows[0].total

    async def insert_role(self, role: Role) -> Role:
        now = time.time()
        role.id = role.id or str(uuid4())
        role.created_at = role.created_at or now
        role.updated_at = now
        await self.database.execute(
            f"""
            INSERT INTO admin_roles ({_ROLE_COLUMNS})
            VALUES (:id, :name, :display_name, :description, :scope, :permissions,
                    :parent_role_id, :priority, :color, :icon, :is_system, :is_active,
                    :created_by_id, :created_at, :updated_at)
            """,
            self._role_params(role),
        )
        return role

    async def save_role(self, role: Role) -> Role:
        """Write every mutable column of an existing role."""
        role.updated_at = time.time()
        await self.database.execute(
            """
            UPDATE admin_roles SET
                display_name = :display_name,
                description = :description,
                permissions = :permissions,
                parent_role_id = :parent_role_id,
                priority = :priority,
                color = :color,
                icon = :icon,
                is_active = :is_active,
                updated_at = :updated_at
            WHERE id = :id
            """,
            self._role_params(role),
        )
        return role

    def _role_params(self, role: Role) -> dict[str, Any]:
        return {
            "id": role.id,
            "name": role.name,
            "display_name": role.display_name,
            "description": role.description,
            "scope": role.scope.value,
            "permissions": json.dumps(list(role.permissions)),
            "parent_role_id": role.parent_role_id,
            "priority": role.priority,
            "color": role.color,
            "icon": role.icon,
            "is_system": int(role.is_system),
            "is_active": int(role.is_active),
            "created_by_id": role.created_by_id,
            "created_at": role.created_at,
            "updated_at": role.updated_at,
        }

    async def detach_children(self, parent_role_id: str) -> list[str]:
        """Null the parent pointer of every direct child. Returns their ids."""
        rows = await self.database.execute(
            "SELECT id FROM admin_roles WHERE parent_role_id = :id ORDER BY id",
            {"id": parent_role_id},
        )
        child_ids = [row.id for row in rows]
        if child_ids:
            await self.database.execute(
                """
                UPDATE admin_roles SET parent_role_id = NULL, updated_at = :now
                WHERE parent_role_id = :id
                """,
                {"id": parent_role_id, "now": time.time()},
            )
        return child_ids

    async def delete_role(self, role_id: str) -> None:
        await self.database.execute(
            "DELETE FROM admin_roles WHERE id = :id", {"id": role_id}
        )

    # Admins

    async def get_admin(self, admin_id: str) -> Admin | None:
        rows = await self.database.execute(
            "SELECT id, email, name, role, admin_role_id, created_at FROM admins WHERE id = :id",
            {"id": admin_id},
        )
        return Admin.from_row(rows[0]) if rows else None

    async def create_admin(
        self,
        email: str,
        name: str | None = None,
        role: str | None = None,
        admin_role_id: str | None = None,
        admin_id: str | None = None,
    ) -> Admin:
        admin = Admin(
            id=admin_id or str(uuid4()),
            email=email,
            name=name,
            role=role,
            admin_role_id=admin_role_id,
            created_at=time.time(),
        )
        await self.database.execute(
            """
            INSERT INTO admins (id, email, name, role, admin_role_id, created_at)
            VALUES (:id, :email, :name, :role, :admin_role_id, :created_at)
            """,
            admin.to_dict(),
        )
        return admin

    async def set_admin_role(self, admin_id: str, role_id: str | None) -> None:
        await self.database.execute(
            "UPDATE admins SET admin_role_id = :role_id WHERE id = :id",
            {"id": admin_id, "role_id": role_id},
        )

    async def count_admins_with_role(self, role_id: str) -> int:
        rows = await self.database.execute(
            "SELECT COUNT(*) AS total FROM admins WHERE admin_role_id = :role_id",
            {"role_id": role_id},
        )
        return rows[0].total

    async def admin_counts_by_role(self) -> dict[str, int]:
        rows = await self.database.execute(
            """
            SELECT admin_role_id, COUNT(*) AS total FROM admins
            WHERE admin_role_id IS NOT NULL
            GROUP BY admin_role_id
            """
        )
        return {row.admin_role_id: row.total for row in rows}

    async def list_admins_with_role(self, role_id: str) -> list[Admin]:
        rows = await self.database.execute(
            """
            SELECT id, email, name, role, admin_role_id, created_at FROM admins
            WHERE admin_role_id = :role_id ORDER BY email
            """,
            {"role_id": role_id},
        )
        return [Admin.from_row(row) for row in rows]

    async def list_admins_without_role(self) -> list[Admin]:
        rows = await self.database.execute(
            """
            SELECT id, email, name, role, admin_role_id, created_at FROM admins
            WHERE admin_role_id IS NULL ORDER BY created_at, id
            """
        )
        return [Admin.from_row(row) for row in rows]

    # Permission catalog projection

    async def upsert_permissions(self, permissions: Iterable[Permission]) -> int:
        """Insert or refresh catalog rows by (scope, key). Never deletes."""
        now = time.time()
        params = [
            {
                "scope": p.scope.value,
                "permission_key": p.key,
                "display_name": p.display_name,
                "description": p.description,
                "category": p.category,
                "sort_order": p.sort_order,
                "registry_version": REGISTRY_VERSION,
                "updated_at": now,
            }
            for p in permissions
        ]
        await self.database.execute_many(
            """
            INSERT INTO permissions
                (scope, permission_key, display_name, description, category,
                 sort_order, registry_version, updated_at)
            VALUES
                (:scope, :permission_key, :display_name, :description, :category,
                 :sort_order, :registry_version, :updated_at)
            ON CONFLICT (scope, permission_key) DO UPDATE SET
                display_name = excluded.display_name,
                description = excluded.description,
                category = excluded.category,
                sort_order = excluded.sort_order,
                registry_version = excluded.registry_version,
                updated_at = excluded.updated_at
            """,
            params,
        )
        return len(params)

    async def list_persisted_permission_keys(self, scope: RoleScope) -> list[str]:
        rows = await self.database.execute(
            """
            SELECT permission_key FROM permissions
            WHERE scope = :scope ORDER BY category, sort_order, permission_key
            """,
            {"scope": RoleScope(scope).value},
        )
        return [row.permission_key for row in rows]

    # Audit logs

    async def insert_audit_log(self, entry: AuditLogEntry) -> AuditLogEntry:
        entry.id = entry.id or str(uuid4())
        entry.created_at = entry.created_at or time.time()
        await self.database.execute(
            """
            INSERT INTO role_audit_logs
                (id, role_id, action, performed_by_id, previous_state, new_state,
                 changes, ip_address, user_agent, created_at)
            VALUES
                (:id, :role_id, :action, :performed_by_id, :previous_state, :new_state,
                 :changes, :ip_address, :user_agent, :created_at)
            """,
            {
                "id": entry.id,
                "role_id": entry.role_id,
                "action": entry.action.value,
                "performed_by_id": entry.performed_by_id,
                "previous_state": _dump(entry.previous_state),
                "new_state": _dump(entry.new_state),
                "changes": _dump(entry.changes),
                "ip_address": entry.ip_address,
                "user_agent": entry.user_agent,
                "created_at": entry.created_at,
            },
        )
        return entry

    def _audit_filters(
        self,
        role_id: str | None,
        performed_by_id: str | None,
        action: RoleAuditAction | None,
    ) -> tuple[str, dict[str, Any]]:
        clauses: list[str] = []
        params: dict[str, Any] = {}
        if role_id:
            clauses.append("role_id = :role_id")
            params["role_id"] = role_id
        if performed_by_id:
            clauses.append("performed_by_id = :performed_by_id")
            params["performed_by_id"] = performed_by_id
        if action:
            clauses.append("action = :action")
            params["action"] = RoleAuditAction(action).value
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def query_audit_logs(
        self,
        role_id: str | None = None,
        performed_by_id: str | None = None,
        action: RoleAuditAction | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[AuditLogEntry]:
        where, params = self._audit_filters(role_id, performed_by_id, action)
        params.update({"limit": limit, "offset": offset})
        rows = await self.database.execute(
            f"""
            SELECT id, role_id, action, performed_by_id, previous_state, new_state,
                   changes, ip_address, user_agent, created_at
            FROM role_audit_logs {where}
            ORDER BY created_at DESC, seq DESC
            LIMIT :limit OFFSET :offset
            """,
            params,
        )
        return [AuditLogEntry.from_row(row) for row in rows]

    async def count_audit_logs(
        self,
        role_id: str | None = None,
        performed_by_id: str | None = None,
        action: RoleAuditAction | None = None,
    ) -> int:
        where, params = self._audit_filters(role_id, performed_by_id, action)
        rows = await self.database.execute(
            f"SELECT COUNT(*) AS total FROM role_audit_logs {where}", params
        )
        return rows[0].total


def _dump(value: Any) -> str | None:
    return None if value is None else json.dumps(value, default=str)
