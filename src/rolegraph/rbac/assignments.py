"""Binding admins to dynamic roles."""

from rolegraph.exceptions import AdminNotFoundError, RoleNotFoundError, ScopeMismatchError
from rolegraph.observability import get_logger
from rolegraph.rbac.audit import AuditTrail, resolve_performer, resolve_provenance
from rolegraph.rbac.models import (
    Admin,
    AuditLogEntry,
    Provenance,
    RoleAuditAction,
)
from rolegraph.rbac.permissions import RoleScope
from rolegraph.rbac.store import RoleStore

logger = get_logger(__name__)


class AssignmentManager:
    """Assigns and removes an admin's dynamic role.

    An admin holds at most one dynamic role. Only PLATFORM roles may be
    assigned to admins.
    """

    def __init__(self, store: RoleStore, audit: AuditTrail) -> None:
        self.store = store
        self.audit = audit

    async def _get_admin(self, admin_id: str) -> Admin:
        admin = await self.store.get_admin(admin_id)
        if admin is None:
            raise AdminNotFoundError(f"Admin not found: {admin_id}")
        return admin

    async def assign_role_to_admin(
        self,
        admin_id: str,
        role_id: str,
        performed_by_id: str | None,
        provenance: Provenance | None = None,
    ) -> Admin:
        """Set an admin's dynamic role, replacing any previous one.

        Assigning an inactive role is allowed and only logged, since inactive
        roles still grant their permissions.

        Raises:
            AdminNotFoundError: If the admin doesn't exist
            RoleNotFoundError: If the role doesn't exist
            ScopeMismatchError: If the role is not a PLATFORM role
            PerformerRequiredError: If no performer is given or bound
        """
        performed_by_id = resolve_performer(performed_by_id)
        provenance = resolve_provenance(provenance)
        async with self.store.database.transaction():
            admin = await self._get_admin(admin_id)
            role = await self.store.get_role(role_id)
            if role is None:
                raise RoleNotFoundError(f"Role not found: {role_id}")
            if role.scope != RoleScope.PLATFORM:
                raise ScopeMismatchError("Can only assign platform roles to admins")
            if not role.is_active:
                logger.warning(
                    "Assigning inactive role",
                    context={"admin_id": admin_id, "role_id": role_id},
                )

            previous_role_id = admin.admin_role_id
            await self.store.set_admin_role(admin_id, role_id)
            await self.audit.log_role_audit(AuditLogEntry(
                role_id=role_id,
                action=RoleAuditAction.ADMIN_ASSIGNED,
                performed_by_id=performed_by_id,
                changes={
                    "admin_id": admin_id,
                    "previous_role_id": previous_role_id,
                    "new_role_id": role_id,
                },
                ip_address=provenance.ip_address,
                user_agent=provenance.user_agent,
            ))

        admin.admin_role_id = role_id
        logger.info(
            "Role assigned to admin",
            context={"admin_id": admin_id, "role_id": role_id, "previous_role_id": previous_role_id},
        )
        return admin

    async def remove_role_from_admin(
        self,
        admin_id: str,
        performed_by_id: str | None,
        provenance: Provenance | None = None,
    ) -> Admin:
        """Clear an admin's dynamic role so the legacy role governs again.

        No audit entry is written if the admin had no dynamic role.

        Raises:
            PerformerRequiredError: If no performer is given or bound
            AdminNotFoundError: If the admin doesn't exist
        """
        performed_by_id = resolve_performer(performed_by_id)
        provenance = resolve_provenance(provenance)
        async with self.store.database.transaction():
            admin = await self._get_admin(admin_id)
            previous_role_id = admin.admin_role_id
            await self.store.set_admin_role(admin_id, None)
            if previous_role_id:
                await self.audit.log_role_audit(AuditLogEntry(
                    role_id=previous_role_id,
                    action=RoleAuditAction.ADMIN_UNASSIGNED,
                    performed_by_id=performed_by_id,
                    changes={
                        "admin_id": admin_id,
                        "previous_role_id": previous_role_id,
                        "new_role_id": None,
                    },
                    ip_address=provenance.ip_address,
                    user_agent=provenance.user_agent,
                ))

        admin.admin_role_id = None
        if previous_role_id:
            logger.info(
                "Role removed from admin",
                context={"admin_id": admin_id, "role_id": previous_role_id},
            )
        return admin

    async def get_admins_with_role(self, role_id: str) -> list[Admin]:
        """Admins currently assigned ``role_id``, ordered by email."""
        return await self.store.list_admins_with_role(role_id)
