"""Permission resolution.

A role's effective permissions are its own keys united with those of every
ancestor reachable through ``parent_role_id``. Resolution has no side
effects apart from filling the optional read cache.
"""

from dataclasses import dataclass

from rolegraph.observability import get_logger
from rolegraph.rbac.cache import EffectivePermissionCache
from rolegraph.rbac.legacy import legacy_role_has_permission, legacy_role_permissions
from rolegraph.rbac.models import Admin, ResolvedPermissions
from rolegraph.rbac.permissions import wildcard_for
from rolegraph.rbac.store import RoleStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class DynamicGovernance:
    """Admin governed by an assigned role and its ancestors."""

    admin_id: str
    role_id: str


@dataclass(frozen=True)
class LegacyGovernance:
    """Admin governed by the flat legacy role table."""

    admin_id: str
    legacy_role: str | None


Governance = DynamicGovernance | LegacyGovernance


def governance_for(admin: Admin) -> Governance:
    """Decide which permission model applies to an admin.

    Exactly one applies: the dynamic role when one is assigned, the
    legacy table otherwise.
    """
    if admin.admin_role_id:
        return DynamicGovernance(admin_id=admin.id, role_id=admin.admin_role_id)
    return LegacyGovernance(admin_id=admin.id, legacy_role=admin.role)


class PermissionResolver:
    """Answers "does this role/admin hold this permission"."""

    def __init__(
        self,
        store: RoleStore,
        cache: EffectivePermissionCache | None = None,
        max_depth: int = 32,
    ) -> None:
        self.store = store
        self.cache = cache or EffectivePermissionCache()
        self.max_depth = max_depth

    async def resolve(self, role_id: str) -> ResolvedPermissions | None:
        """Walk from a role to the root, collecting permissions.

        The walk stops at a missing parent, at a revisited id, or after
        ``max_depth`` roles; the latter two only happen with corrupted data
        and are logged.

        Returns:
            None if the role itself does not exist
        """
        cached = await self.cache.get(role_id)
        if cached is not None:
            return cached

        role = await self.store.get_role(role_id)
        if role is None:
            return None

        permissions = set(role.permissions)
        visited = {role.id}
        current = role.parent_role_id
        while current:
            if current in visited:
                logger.warning(
                    "Cycle in role hierarchy, stopping inheritance walk",
                    context={"role_id": role_id, "revisited": current},
                )
                break
            if len(visited) >= self.max_depth:
                logger.warning(
                    "Role hierarchy deeper than limit, stopping inheritance walk",
                    context={"role_id": role_id, "max_depth": self.max_depth},
                )
                break
            visited.add(current)
            ancestor = await self.store.get_role(current)
            if ancestor is None:
                break
            permissions.update(ancestor.permissions)
            current = ancestor.parent_role_id

        resolved = ResolvedPermissions(
            role_id=role.id,
            scope=role.scope,
            permissions=frozenset(permissions),
        )
        await self.cache.set(resolved)
        return resolved

    async def effective_permissions(self, role_id: str) -> set[str]:
        """Own plus inherited permission keys; empty for an unknown role."""
        resolved = await self.resolve(role_id)
        return set(resolved.permissions) if resolved else set()

    async def role_has_permission(self, role_id: str, permission: str) -> bool:
        """Check a permission, honoring the scope's wildcard."""
        resolved = await self.resolve(role_id)
        if resolved is None:
            return False
        if wildcard_for(resolved.scope) in resolved.permissions:
            return True
        return permission in resolved.permissions

    async def principal_has_permission(self, admin_id: str, permission: str) -> bool:
        """Check a permission for an admin under whichever model governs it."""
        admin = await self.store.get_admin(admin_id)
        if admin is None:
            return False

        governance = governance_for(admin)
        if isinstance(governance, DynamicGovernance):
            return await self.role_has_permission(governance.role_id, permission)
        return legacy_role_has_permission(governance.legacy_role, permission)

    async def principal_permissions(self, admin_id: str) -> set[str]:
        """Every permission key an admin holds (wildcards are not expanded)."""
        admin = await self.store.get_admin(admin_id)
        if admin is None:
            return set()

        governance = governance_for(admin)
        if isinstance(governance, DynamicGovernance):
            return await self.effective_permissions(governance.role_id)
        return set(legacy_role_permissions(governance.legacy_role))
