"""Role lifecycle management.

Every mutation runs in one transaction covering its validation reads, the
write and the audit entry. Conflicts are raised before anything is written.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from rolegraph.exceptions import (
    CircularHierarchyError,
    DuplicateRoleError,
    RoleInUseError,
    RoleNotFoundError,
    ScopeMismatchError,
    SystemRoleError,
)
from rolegraph.observability import get_logger
from rolegraph.rbac.audit import (
    AuditTrail,
    build_changes,
    resolve_performer,
    resolve_provenance,
)
from rolegraph.rbac.cache import EffectivePermissionCache
from rolegraph.rbac.defaults import get_default_roles
from rolegraph.rbac.models import (
    NO_PROVENANCE,
    AuditLogEntry,
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
    RoleScope,
    filter_valid_permissions,
    list_permissions,
)
from rolegraph.rbac.store import RoleStore

logger = get_logger(__name__)


@dataclass
class SeedResult:
    """Outcome of seeding the default roles."""

    created: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"created": list(self.created), "existing": list(self.existing)}


class RoleManager:
    """Creates, updates, deletes and clones roles.

    Invariants enforced on every write:
    - role names are unique
    - a parent role has the same scope as its child
    - the parent graph stays acyclic
    - system roles are never deleted or re-parented
    - permissions only contain keys from the role's scope registry
    """

    def __init__(
        self,
        store: RoleStore,
        audit: AuditTrail,
        cache: EffectivePermissionCache | None = None,
        system_actor_id: str = "system",
        page_size: int = 50,
        max_page_size: int = 200,
    ) -> None:
        """Initialize role manager.

        Args:
            store: Role persistence
            audit: Audit trail written on every mutation
            cache: Effective-permission cache to clear after mutations
            system_actor_id: Performer recorded for bootstrap seeding
            page_size: Default page size for role listings
            max_page_size: Upper bound on requested page sizes
        """
        self.store = store
        self.audit = audit
        self.cache = cache or EffectivePermissionCache()
        self.system_actor_id = system_actor_id
        self.page_size = page_size
        self.max_page_size = max_page_size

    @property
    def database(self) -> Any:
        return self.store.database

    # Queries

    async def get_role(self, role_id: str) -> Role:
        """Get a role by id.

        Raises:
            RoleNotFoundError: If the role doesn't exist
        """
        role = await self.store.get_role(role_id)
        if role is None:
            raise RoleNotFoundError(f"Role not found: {role_id}")
        return role

    async def get_role_by_name(self, name: str) -> Role:
        """Get a role by name.

        Raises:
            RoleNotFoundError: If the role doesn't exist
        """
        role = await self.store.get_role_by_name(name)
        if role is None:
            raise RoleNotFoundError(f"Role not found: {name}")
        return role

    async def get_roles(
        self,
        scope: RoleScope | str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        include_admin_counts: bool = False,
        page: int = 1,
        limit: int | None = None,
    ) -> RolePage:
        """List roles, ordered by priority desc then display name.

        Args:
            scope: Only roles of this scope
            is_active: Only active (True) or inactive (False) roles
            search: Case-insensitive substring of name, display name or description
            include_admin_counts: Also count assigned admins per role
            page: 1-based page number
            limit: Page size, capped at the configured maximum
        """
        scope = RoleScope(scope) if scope else None
        page = max(1, page)
        limit = min(max(1, limit or self.page_size), self.max_page_size)

        roles = await self.store.list_roles(
            scope=scope,
            is_active=is_active,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total = await self.store.count_roles(scope=scope, is_active=is_active, search=search)

        admin_counts: dict[str, int] = {}
        if include_admin_counts:
            counts = await self.store.admin_counts_by_role()
            admin_counts = {role.id: counts.get(role.id, 0) for role in roles}

        return RolePage(roles=roles, total=total, page=page, limit=limit, admin_counts=admin_counts)

    async def get_role_hierarchy(self, scope: RoleScope | str) -> list[RoleNode]:
        """Active roles of a scope nested under their parents.

        Roots and siblings are ordered by priority desc, then display name.
        A role whose parent is inactive is shown as a root.
        """
        roles = await self.store.list_roles(scope=RoleScope(scope), is_active=True)
        counts = await self.store.admin_counts_by_role()

        nodes = {role.id: RoleNode(role=role, admin_count=counts.get(role.id, 0)) for role in roles}
        roots: list[RoleNode] = []
        for role in roles:
            node = nodes[role.id]
            if role.parent_role_id and role.parent_role_id in nodes:
                nodes[role.parent_role_id].children.append(node)
            else:
                roots.append(node)
        return roots

    # Mutations

    async def create_role(
        self,
        input: CreateRoleInput | dict[str, Any],
        performed_by_id: str | None,
        provenance: Provenance | None = None,
    ) -> Role:
        """Create a role.

        Unknown permission keys are dropped with a warning.

        Args:
            input: Role definition
            performed_by_id: Principal performing the change; defaults to
                the actor bound by AuditContext
            provenance: Request origin for the audit entry; defaults to the
                origin bound by AuditContext

        Raises:
            DuplicateRoleError: If the name is taken
            RoleNotFoundError: If the parent role doesn't exist
            ScopeMismatchError: If the parent role has a different scope
            PerformerRequiredError: If no performer is given or bound
        """
        performed_by_id = resolve_performer(performed_by_id)
        provenance = resolve_provenance(provenance)
        if not isinstance(input, CreateRoleInput):
            input = CreateRoleInput.model_validate(input)

        async with self.database.transaction():
            role = await self._create(input, performed_by_id, provenance)

        logger.info(
            "Role created",
            context={"role_id": role.id, "name": role.name, "scope": role.scope.value},
        )
        return role

    async def _create(
        self,
        input: CreateRoleInput,
        performed_by_id: str,
        provenance: Provenance,
    ) -> Role:
        if await self.store.get_role_by_name(input.name) is not None:
            raise DuplicateRoleError(f'Role with name "{input.name}" already exists')

        if input.parent_role_id:
            parent = await self.store.get_role(input.parent_role_id)
            if parent is None:
                raise RoleNotFoundError(f"Parent role not found: {input.parent_role_id}")
            if parent.scope != input.scope:
                raise ScopeMismatchError("Parent role must be in the same scope")

        role = Role(
            id="",
            name=input.name,
            display_name=input.display_name,
            description=input.description,
            scope=input.scope,
            permissions=filter_valid_permissions(input.permissions, input.scope),
            parent_role_id=input.parent_role_id or None,
            priority=input.priority,
            color=input.color,
            icon=input.icon,
            is_system=input.is_system,
            is_active=True,
            created_by_id=input.created_by_id,
        )
        await self.store.insert_role(role)

        await self.audit.log_role_audit(AuditLogEntry(
            role_id=role.id,
            action=RoleAuditAction.CREATED,
            performed_by_id=performed_by_id,
            new_state=role.to_dict(),
            ip_address=provenance.ip_address,
            user_agent=provenance.user_agent,
        ))
        return role

    async def update_role(
        self,
        role_id: str,
        input: UpdateRoleInput | dict[str, Any],
        performed_by_id: str | None,
        provenance: Provenance | None = None,
    ) -> Role:
        """Apply a partial update to a role.

        The audit action is the most specific that applies:
        PERMISSIONS_CHANGED, then DEACTIVATED/ACTIVATED, then UPDATED.

        Args:
            role_id: Role to update
            input: Fields to change; only explicitly passed fields apply
            performed_by_id: Principal performing the change; defaults to
                the actor bound by AuditContext
            provenance: Request origin for the audit entry; defaults to the
                origin bound by AuditContext

        Raises:
            RoleNotFoundError: If the role or the new parent doesn't exist
            CircularHierarchyError: If the new parent would create a cycle
            ScopeMismatchError: If the new parent has a different scope
            SystemRoleError: If the parent of a system role would change
            PerformerRequiredError: If no performer is given or bound
        """
        performed_by_id = resolve_performer(performed_by_id)
        provenance = resolve_provenance(provenance)
        if not isinstance(input, UpdateRoleInput):
            input = UpdateRoleInput.model_validate(input)

        async with self.database.transaction():
            existing = await self.store.get_role(role_id)
            if existing is None:
                raise RoleNotFoundError(f"Role not found: {role_id}")

            updated = replace(existing, permissions=list(existing.permissions))

            if input.permissions is not None:
                updated.permissions = filter_valid_permissions(input.permissions, existing.scope)

            if input.supplied("parent_role_id"):
                new_parent_id = input.parent_role_id or None
                if new_parent_id != existing.parent_role_id:
                    await self._validate_new_parent(existing, new_parent_id)
                updated.parent_role_id = new_parent_id

            if input.display_name is not None:
                updated.display_name = input.display_name
            if input.is_active is not None:
                updated.is_active = input.is_active
            if input.priority is not None:
                updated.priority = input.priority
            for name in ("description", "color", "icon"):
                if input.supplied(name):
                    setattr(updated, name, getattr(input, name))

            changes = build_changes(existing, updated)
            if input.permissions is not None:
                action = RoleAuditAction.PERMISSIONS_CHANGED
            elif input.is_active is False:
                action = RoleAuditAction.DEACTIVATED
            elif input.is_active is True:
                action = RoleAuditAction.ACTIVATED
            else:
                action = RoleAuditAction.UPDATED

            await self.store.save_role(updated)
            await self.audit.log_role_audit(AuditLogEntry(
                role_id=role_id,
                action=action,
                performed_by_id=performed_by_id,
                previous_state=existing.to_dict(),
                new_state=updated.to_dict(),
                changes=changes,
                ip_address=provenance.ip_address,
                user_agent=provenance.user_agent,
            ))

        await self.cache.invalidate_all()
        logger.info(
            "Role updated",
            context={"role_id": role_id, "action": action.value, "fields": sorted(changes)},
        )
        return updated

    async def _validate_new_parent(self, role: Role, new_parent_id: str | None) -> None:
        if new_parent_id == role.id:
            raise CircularHierarchyError("Role cannot be its own parent")

        if new_parent_id is not None:
            parent = await self.store.get_role(new_parent_id)
            if parent is None:
                raise RoleNotFoundError(f"Parent role not found: {new_parent_id}")
            if parent.scope != role.scope:
                raise ScopeMismatchError("Parent role must be in the same scope")
            await self._check_circular_dependency(role.id, new_parent_id)

        if role.is_system:
            raise SystemRoleError(f'Cannot change the parent of system role "{role.name}"')

    async def _check_circular_dependency(self, role_id: str, new_parent_id: str) -> None:
        """Walk up from the candidate parent through live rows.

        Fails if the walk reaches the role being updated, or revisits any
        role (the stored hierarchy already holds a cycle).
        """
        current: str | None = new_parent_id
        visited: set[str] = set()
        while current:
            if current == role_id:
                raise CircularHierarchyError(
                    "This would create a circular dependency in the role hierarchy"
                )
            if current in visited:
                raise CircularHierarchyError(
                    f"Role hierarchy already contains a cycle at role {current}"
                )
            visited.add(current)
            _, current = await self.store.get_parent_role_id(current)

    async def delete_role(
        self,
        role_id: str,
        performed_by_id: str | None,
        provenance: Provenance | None = None,
    ) -> Role:
        """Delete a custom role that no admin holds.

        Child roles are detached (their parent is cleared), never deleted.

        Returns:
            The role as it was before deletion

        Raises:
            RoleNotFoundError: If the role doesn't exist
            SystemRoleError: If the role is a system role
            RoleInUseError: If any admin still has the role
            PerformerRequiredError: If no performer is given or bound
        """
        performed_by_id = resolve_performer(performed_by_id)
        provenance = resolve_provenance(provenance)
        async with self.database.transaction():
            role = await self.store.get_role(role_id)
            if role is None:
                raise RoleNotFoundError(f"Role not found: {role_id}")
            if role.is_system:
                raise SystemRoleError("System roles cannot be deleted")

            assigned = await self.store.count_admins_with_role(role_id)
            if assigned > 0:
                raise RoleInUseError(
                    f"Cannot delete role with {assigned} assigned admin(s). "
                    "Please reassign them first."
                )

            detached = await self.store.detach_children(role_id)
            await self.store.delete_role(role_id)

            await self.audit.log_role_audit(AuditLogEntry(
                role_id=role_id,
                action=RoleAuditAction.DELETED,
                performed_by_id=performed_by_id,
                previous_state=role.to_dict(),
                changes={"detached_child_role_ids": detached} if detached else None,
                ip_address=provenance.ip_address,
                user_agent=provenance.user_agent,
            ))

        await self.cache.invalidate_all()
        logger.info(
            "Role deleted",
            context={"role_id": role_id, "name": role.name, "detached_children": len(detached)},
        )
        return role

    async def clone_role(
        self,
        source_role_id: str,
        new_name: str,
        new_display_name: str,
        performed_by_id: str | None,
        provenance: Provenance | None = None,
    ) -> Role:
        """Create a custom copy of a role.

        Scope, permissions, parent, color, icon and priority are copied.
        The clone is never a system role.

        Raises:
            RoleNotFoundError: If the source role doesn't exist
            DuplicateRoleError: If the new name is taken
            PerformerRequiredError: If no performer is given or bound
        """
        performed_by_id = resolve_performer(performed_by_id)
        provenance = resolve_provenance(provenance)
        source = await self.store.get_role(source_role_id)
        if source is None:
            raise RoleNotFoundError(f"Source role not found: {source_role_id}")

        return await self.create_role(
            CreateRoleInput(
                name=new_name,
                display_name=new_display_name,
                description=f"Cloned from {source.display_name}",
                scope=source.scope,
                permissions=list(source.permissions),
                parent_role_id=source.parent_role_id,
                color=source.color,
                icon=source.icon,
                is_system=False,
                priority=source.priority,
                created_by_id=performed_by_id,
            ),
            performed_by_id,
            provenance,
        )

    # Bootstrap

    async def seed_default_roles(self, performed_by_id: str | None = None) -> SeedResult:
        """Create any missing default role, matched by name.

        Existing roles are left untouched, so this is safe to run on every
        startup.
        """
        performed_by_id = performed_by_id or self.system_actor_id
        result = SeedResult()
        async with self.database.transaction():
            for definition in get_default_roles():
                if await self.store.get_role_by_name(definition.name) is not None:
                    result.existing.append(definition.name)
                    continue
                await self._create(definition, performed_by_id, NO_PROVENANCE)
                result.created.append(definition.name)

        if result.created:
            logger.info("Default roles seeded", context=result.to_dict())
        return result

    async def sync_permissions(self) -> dict[str, int]:
        """Project the compiled-in permission catalog into the database.

        Rows are upserted by (scope, key); rows for keys no longer in the
        catalog are left in place.

        Returns:
            Rows written per scope, plus the registry version
        """
        summary: dict[str, int] = {"registry_version": REGISTRY_VERSION}
        async with self.database.transaction():
            for scope in RoleScope:
                summary[scope.value] = await self.store.upsert_permissions(list_permissions(scope))

        logger.info("Permission catalog synced", context=summary)
        return summary
