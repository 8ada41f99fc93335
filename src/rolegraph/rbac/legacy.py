"""Compatibility with the flat legacy admin role enum.

Admins without a dynamic role are governed by a fixed, pre-expanded
permission table. ``migrate_admins_to_new_role_system`` moves them onto
the seeded dynamic roles.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from rolegraph.observability import get_logger
from rolegraph.rbac.permissions import SUPER_WILDCARD

if TYPE_CHECKING:
    from rolegraph.rbac.assignments import AssignmentManager
    from rolegraph.rbac.manager import RoleManager, SeedResult

logger = get_logger(__name__)


class LegacyRole(str, Enum):
    """Flat admin roles predating dynamic roles."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SUPPORT = "SUPPORT"
    ANALYST = "ANALYST"


LEGACY_ROLE_PERMISSIONS: Mapping[LegacyRole, frozenset[str]] = MappingProxyType({
    LegacyRole.SUPER_ADMIN: frozenset({SUPER_WILDCARD}),
    LegacyRole.ADMIN: frozenset({
        "organizations:list", "organizations:read", "organizations:create",
        "organizations:update", "organizations:suspend",
        "users:list", "users:read", "users:update", "users:ban", "users:unban",
        "analytics:dashboard", "analytics:usage:read", "analytics:export",
        "features:list", "features:read", "features:update", "features:toggle",
        "support:tickets:list", "support:tickets:read", "support:tickets:respond",
        "support:tickets:assign", "support:tickets:close",
        "system:rules:read", "system:rules:write", "system:config:read",
        "audit:read",
        "notifications:list", "notifications:create",
        "billing:dashboard", "billing:subscriptions:read", "billing:invoices:read",
        "admins:list", "admins:read",
        "roles:list", "roles:read",
    }),
    LegacyRole.SUPPORT: frozenset({
        "organizations:list", "organizations:read",
        "users:list", "users:read", "users:reset-password",
        "analytics:dashboard", "analytics:usage:read",
        "features:list", "features:read",
        "support:tickets:list", "support:tickets:read", "support:tickets:respond",
        "audit:read",
        "notifications:list",
        "billing:dashboard", "billing:invoices:read",
    }),
    LegacyRole.ANALYST: frozenset({
        "organizations:list", "organizations:read",
        "users:list", "users:read",
        "analytics:dashboard", "analytics:usage:read", "analytics:revenue:read",
        "analytics:growth:read", "analytics:export",
        "features:list", "features:read",
        "audit:read",
    }),
})

# Legacy value -> name of the seeded dynamic role that replaces it
LEGACY_ROLE_MAPPING: Mapping[LegacyRole, str] = MappingProxyType({
    LegacyRole.SUPER_ADMIN: "super-admin",
    LegacyRole.ADMIN: "platform-admin",
    LegacyRole.SUPPORT: "support-agent",
    LegacyRole.ANALYST: "analyst",
})


def parse_legacy_role(value: str | LegacyRole | None) -> LegacyRole | None:
    """Convert a stored value to ``LegacyRole``; unknown values give None."""
    if value is None:
        return None
    try:
        return LegacyRole(value)
    except ValueError:
        return None


def legacy_role_permissions(role: str | LegacyRole | None) -> frozenset[str]:
    """The flat permission set of a legacy role (empty if unknown)."""
    legacy = parse_legacy_role(role)
    if legacy is None:
        return frozenset()
    return LEGACY_ROLE_PERMISSIONS[legacy]


def legacy_role_has_permission(role: str | LegacyRole | None, permission: str) -> bool:
    """Check a permission against the legacy table, honoring ``super:*``."""
    permissions = legacy_role_permissions(role)
    if SUPER_WILDCARD in permissions:
        return True
    return permission in permissions


def map_legacy_role(role: str | LegacyRole | None) -> str | None:
    """Name of the dynamic role replacing a legacy value, or None."""
    legacy = parse_legacy_role(role)
    return LEGACY_ROLE_MAPPING.get(legacy) if legacy else None


@dataclass
class MigrationReport:
    """Outcome of a legacy-to-dynamic role migration run."""

    seeded: "SeedResult | None" = None
    # admin id -> assigned role name
    migrated: dict[str, str] = field(default_factory=dict)
    # admin id -> legacy value that has no mapping
    unmapped: dict[str, str | None] = field(default_factory=dict)
    dry_run: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "seeded": self.seeded.to_dict() if self.seeded else None,
            "migrated": dict(self.migrated),
            "unmapped": dict(self.unmapped),
            "dry_run": self.dry_run,
        }


async def migrate_admins_to_new_role_system(
    roles: "RoleManager",
    assignments: "AssignmentManager",
    performed_by_id: str,
    dry_run: bool = False,
) -> MigrationReport:
    """Backfill ``admin_role_id`` for admins still on legacy roles.

    1. Seed default roles (idempotent, by name).
    2. Map each legacy value to a seeded role id by name.
    3. Assign the mapped role to every admin without a dynamic role.

    Admins whose legacy value has no mapping are reported and left alone.
    Safe to re-run: migrated admins are no longer scanned.

    Args:
        roles: Lifecycle manager used for seeding
        assignments: Assignment manager that records each binding
        performed_by_id: Principal recorded on seeding and assignment audits
        dry_run: Report what would change without writing anything
    """
    report = MigrationReport(dry_run=dry_run)
    if not dry_run:
        report.seeded = await roles.seed_default_roles(performed_by_id=performed_by_id)

    by_name = await roles.store.get_roles_by_names(LEGACY_ROLE_MAPPING.values())
    role_ids = {
        legacy: by_name[name].id
        for legacy, name in LEGACY_ROLE_MAPPING.items()
        if name in by_name
    }

    for admin in await roles.store.list_admins_without_role():
        legacy = parse_legacy_role(admin.role)
        role_name = map_legacy_role(legacy)
        if legacy is None or role_name is None or (legacy not in role_ids and not dry_run):
            report.unmapped[admin.id] = admin.role
            continue
        if not dry_run:
            await assignments.assign_role_to_admin(admin.id, role_ids[legacy], performed_by_id)
        report.migrated[admin.id] = role_name

    logger.info(
        "Legacy role migration finished",
        context={
            "migrated": len(report.migrated),
            "unmapped": len(report.unmapped),
            "dry_run": dry_run,
        },
    )
    if report.unmapped:
        logger.warning(
            "Admins left on legacy roles",
            context={"admins": sorted(report.unmapped)},
        )
    return report
