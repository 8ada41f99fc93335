"""Static permission catalog.

Two disjoint registries, one per scope. Keys are unique within a registry;
the same key in the other registry is unrelated. The catalog is compiled
in and versioned with ``REGISTRY_VERSION``; ``RoleManager.sync_permissions``
projects it into the database for introspection.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

from rolegraph.observability import get_logger

logger = get_logger(__name__)

# Bump whenever a key is added, removed or renamed
REGISTRY_VERSION = 3


class RoleScope(str, Enum):
    """Permission universe a role or permission belongs to."""

    PLATFORM = "PLATFORM"
    TENANT = "TENANT"


SUPER_WILDCARD = "super:*"
ADMIN_WILDCARD = "admin:*"

WILDCARDS: Mapping[RoleScope, str] = MappingProxyType({
    RoleScope.PLATFORM: SUPER_WILDCARD,
    RoleScope.TENANT: ADMIN_WILDCARD,
})


@dataclass(frozen=True)
class Permission:
    """A registry entry."""

    key: str
    scope: RoleScope
    display_name: str
    description: str
    category: str
    sort_order: int

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "scope": self.scope.value,
            "display_name": self.display_name,
            "description": self.description,
            "category": self.category,
            "sort_order": self.sort_order,
        }


PLATFORM_CATEGORIES: tuple[str, ...] = (
    "Organizations",
    "Users",
    "Admins",
    "Roles",
    "Security",
    "Audit",
    "Analytics",
    "Features",
    "Billing",
    "Support",
    "System",
    "Notifications",
    "Integrations",
    "Compliance",
    "Identity",
    "Operations",
)

TENANT_CATEGORIES: tuple[str, ...] = (
    "Agents",
    "Workflows",
    "Reports",
    "Dashboards",
    "Data Sources",
    "Team",
    "Organization Settings",
    "Audiences",
    "Charts",
    "Brand Tracking",
    "Memory",
    "Hierarchy",
)

# (key, display_name, description, category, sort_order)
_PLATFORM_ENTRIES: tuple[tuple[str, str, str, str, int], ...] = (
    # Organizations
    ("organizations:list", "List Organizations", "View list of all organizations", "Organizations", 1),
    ("organizations:read", "View Organization Details", "View detailed organization information", "Organizations", 2),
    ("organizations:create", "Create Organizations", "Create new organizations", "Organizations", 3),
    ("organizations:update", "Update Organizations", "Modify organization settings", "Organizations", 4),
    ("organizations:delete", "Delete Organizations", "Permanently delete organizations", "Organizations", 5),
    ("organizations:suspend", "Suspend Organizations", "Suspend organization access", "Organizations", 6),
    ("organizations:restore", "Restore Organizations", "Restore suspended organizations", "Organizations", 7),
    ("organizations:export", "Export Organization Data", "Export organization data", "Organizations", 8),
    ("organizations:impersonate", "Impersonate Organization", "Access org as if logged in", "Organizations", 9),

    # Users
    ("users:list", "List Users", "View list of all users", "Users", 1),
    ("users:read", "View User Details", "View detailed user information", "Users", 2),
    ("users:create", "Create Users", "Create new user accounts", "Users", 3),
    ("users:update", "Update Users", "Modify user information", "Users", 4),
    ("users:delete", "Delete Users", "Permanently delete user accounts", "Users", 5),
    ("users:ban", "Ban Users", "Ban users from platform", "Users", 6),
    ("users:unban", "Unban Users", "Remove user bans", "Users", 7),
    ("users:reset-password", "Reset User Passwords", "Force password reset for users", "Users", 8),
    ("users:export", "Export User Data", "Export user data", "Users", 9),
    ("users:impersonate", "Impersonate Users", "Access platform as user", "Users", 10),

    # Admins
    ("admins:list", "List Admins", "View list of all admins", "Admins", 1),
    ("admins:read", "View Admin Details", "View detailed admin information", "Admins", 2),
    ("admins:create", "Create Admins", "Create new admin accounts", "Admins", 3),
    ("admins:update", "Update Admins", "Modify admin information", "Admins", 4),
    ("admins:delete", "Delete Admins", "Delete admin accounts", "Admins", 5),
    ("admins:reset-password", "Reset Admin Passwords", "Force password reset for admins", "Admins", 6),
    ("admins:manage-2fa", "Manage Admin 2FA", "Enable/disable admin 2FA", "Admins", 7),
    ("admins:revoke-sessions", "Revoke Admin Sessions", "Force logout admin sessions", "Admins", 8),

    # Roles
    ("roles:list", "List Roles", "View list of all roles", "Roles", 1),
    ("roles:read", "View Role Details", "View role permissions and assignments", "Roles", 2),
    ("roles:create", "Create Roles", "Create new custom roles", "Roles", 3),
    ("roles:update", "Update Roles", "Modify role permissions", "Roles", 4),
    ("roles:delete", "Delete Roles", "Delete custom roles", "Roles", 5),
    ("roles:assign", "Assign Roles", "Assign roles to admins", "Roles", 6),

    # Security
    ("security:dashboard", "Security Dashboard", "View security overview", "Security", 1),
    ("security:policies:read", "View Security Policies", "View security policy settings", "Security", 2),
    ("security:policies:write", "Manage Security Policies", "Create/modify security policies", "Security", 3),
    ("security:threats:read", "View Threat Detection", "View security threats", "Security", 4),
    ("security:threats:manage", "Manage Threats", "Respond to security threats", "Security", 5),
    ("security:violations:read", "View Violations", "View policy violations", "Security", 6),
    ("security:violations:manage", "Manage Violations", "Handle policy violations", "Security", 7),
    ("security:ip-allowlist:read", "View IP Allowlist", "View allowed IP addresses", "Security", 8),
    ("security:ip-allowlist:write", "Manage IP Allowlist", "Modify IP allowlist", "Security", 9),

    # Audit
    ("audit:read", "View Audit Logs", "View platform audit logs", "Audit", 1),
    ("audit:export", "Export Audit Logs", "Export audit log data", "Audit", 2),
    ("audit:configure", "Configure Audit Settings", "Modify audit log settings", "Audit", 3),
    ("audit:retention", "Manage Retention", "Configure log retention policies", "Audit", 4),

    # Analytics
    ("analytics:dashboard", "Analytics Dashboard", "View analytics overview", "Analytics", 1),
    ("analytics:usage:read", "View Usage Analytics", "View platform usage metrics", "Analytics", 2),
    ("analytics:revenue:read", "View Revenue Analytics", "View revenue/billing metrics", "Analytics", 3),
    ("analytics:growth:read", "View Growth Analytics", "View growth metrics", "Analytics", 4),
    ("analytics:export", "Export Analytics", "Export analytics data", "Analytics", 5),
    ("analytics:reports:create", "Create Reports", "Create custom reports", "Analytics", 6),
    ("analytics:reports:schedule", "Schedule Reports", "Schedule automated reports", "Analytics", 7),

    # Features
    ("features:list", "List Feature Flags", "View feature flags", "Features", 1),
    ("features:read", "View Feature Details", "View feature flag configuration", "Features", 2),
    ("features:create", "Create Feature Flags", "Create new feature flags", "Features", 3),
    ("features:update", "Update Feature Flags", "Modify feature flags", "Features", 4),
    ("features:delete", "Delete Feature Flags", "Remove feature flags", "Features", 5),
    ("features:toggle", "Toggle Features", "Enable/disable features", "Features", 6),
    ("features:rollout", "Manage Rollouts", "Configure feature rollouts", "Features", 7),

    # Billing
    ("billing:dashboard", "Billing Dashboard", "View billing overview", "Billing", 1),
    ("billing:plans:read", "View Plans", "View subscription plans", "Billing", 2),
    ("billing:plans:write", "Manage Plans", "Create/modify plans", "Billing", 3),
    ("billing:subscriptions:read", "View Subscriptions", "View org subscriptions", "Billing", 4),
    ("billing:subscriptions:write", "Manage Subscriptions", "Modify subscriptions", "Billing", 5),
    ("billing:invoices:read", "View Invoices", "View invoices", "Billing", 6),
    ("billing:invoices:create", "Create Invoices", "Generate invoices", "Billing", 7),
    ("billing:refunds", "Process Refunds", "Issue refunds", "Billing", 8),
    ("billing:credits", "Manage Credits", "Add/remove credits", "Billing", 9),

    # Support
    ("support:tickets:list", "List Support Tickets", "View support ticket list", "Support", 1),
    ("support:tickets:read", "View Ticket Details", "View ticket information", "Support", 2),
    ("support:tickets:create", "Create Tickets", "Create support tickets", "Support", 3),
    ("support:tickets:respond", "Respond to Tickets", "Reply to tickets", "Support", 4),
    ("support:tickets:assign", "Assign Tickets", "Assign tickets to agents", "Support", 5),
    ("support:tickets:close", "Close Tickets", "Close/resolve tickets", "Support", 6),
    ("support:tickets:escalate", "Escalate Tickets", "Escalate to higher priority", "Support", 7),
    ("support:knowledge:read", "View Knowledge Base", "View KB articles", "Support", 8),
    ("support:knowledge:write", "Manage Knowledge Base", "Create/edit KB articles", "Support", 9),

    # System
    ("system:config:read", "View System Config", "View system configuration", "System", 1),
    ("system:config:write", "Modify System Config", "Change system settings", "System", 2),
    ("system:rules:read", "View System Rules", "View automation rules", "System", 3),
    ("system:rules:write", "Manage System Rules", "Create/modify rules", "System", 4),
    ("system:maintenance:read", "View Maintenance", "View maintenance status", "System", 5),
    ("system:maintenance:write", "Manage Maintenance", "Schedule maintenance", "System", 6),
    ("system:health:read", "View System Health", "View health metrics", "System", 7),
    ("system:logs:read", "View System Logs", "View application logs", "System", 8),
    ("system:cache:manage", "Manage Cache", "Clear/manage caches", "System", 9),
    ("system:jobs:read", "View Background Jobs", "View job status", "System", 10),
    ("system:jobs:manage", "Manage Background Jobs", "Start/stop/retry jobs", "System", 11),

    # Notifications
    ("notifications:list", "List Notifications", "View notifications", "Notifications", 1),
    ("notifications:create", "Create Notifications", "Send notifications", "Notifications", 2),
    ("notifications:broadcast", "Broadcast Messages", "Send platform-wide messages", "Notifications", 3),
    ("notifications:templates:read", "View Templates", "View notification templates", "Notifications", 4),
    ("notifications:templates:write", "Manage Templates", "Create/edit templates", "Notifications", 5),

    # Integrations
    ("integrations:list", "List Integrations", "View integrations", "Integrations", 1),
    ("integrations:read", "View Integration Details", "View integration config", "Integrations", 2),
    ("integrations:create", "Create Integrations", "Add new integrations", "Integrations", 3),
    ("integrations:update", "Update Integrations", "Modify integrations", "Integrations", 4),
    ("integrations:delete", "Delete Integrations", "Remove integrations", "Integrations", 5),
    ("integrations:webhooks:read", "View Webhooks", "View webhook config", "Integrations", 6),
    ("integrations:webhooks:write", "Manage Webhooks", "Create/modify webhooks", "Integrations", 7),
    ("integrations:api-clients:read", "View API Clients", "View API client config", "Integrations", 8),
    ("integrations:api-clients:write", "Manage API Clients", "Create/modify API clients", "Integrations", 9),

    # Compliance
    ("compliance:dashboard", "Compliance Dashboard", "View compliance overview", "Compliance", 1),
    ("compliance:frameworks:read", "View Frameworks", "View compliance frameworks", "Compliance", 2),
    ("compliance:frameworks:write", "Manage Frameworks", "Configure frameworks", "Compliance", 3),
    ("compliance:audits:read", "View Compliance Audits", "View audit records", "Compliance", 4),
    ("compliance:audits:write", "Manage Compliance Audits", "Create/manage audits", "Compliance", 5),
    ("compliance:legal-holds:read", "View Legal Holds", "View legal holds", "Compliance", 6),
    ("compliance:legal-holds:write", "Manage Legal Holds", "Create/manage legal holds", "Compliance", 7),
    ("compliance:data-retention:read", "View Data Retention", "View retention policies", "Compliance", 8),
    ("compliance:data-retention:write", "Manage Data Retention", "Configure retention", "Compliance", 9),

    # Identity
    ("identity:domains:read", "View Domains", "View domain configuration", "Identity", 1),
    ("identity:domains:write", "Manage Domains", "Configure domains", "Identity", 2),
    ("identity:sso:read", "View SSO Settings", "View SSO configuration", "Identity", 3),
    ("identity:sso:write", "Manage SSO", "Configure SSO providers", "Identity", 4),
    ("identity:scim:read", "View SCIM Settings", "View SCIM configuration", "Identity", 5),
    ("identity:scim:write", "Manage SCIM", "Configure SCIM", "Identity", 6),
    ("identity:devices:read", "View Devices", "View registered devices", "Identity", 7),
    ("identity:devices:write", "Manage Devices", "Manage device access", "Identity", 8),

    # Operations
    ("operations:incidents:read", "View Incidents", "View incident reports", "Operations", 1),
    ("operations:incidents:write", "Manage Incidents", "Create/manage incidents", "Operations", 2),
    ("operations:releases:read", "View Releases", "View release information", "Operations", 3),
    ("operations:releases:write", "Manage Releases", "Plan/execute releases", "Operations", 4),
    ("operations:capacity:read", "View Capacity", "View capacity metrics", "Operations", 5),
    ("operations:capacity:write", "Manage Capacity", "Manage resources", "Operations", 6),

    # Super access (full access)
    ("super:*", "Super Admin Access", "Full platform access with all permissions", "System", 999),
)

_TENANT_ENTRIES: tuple[tuple[str, str, str, str, int], ...] = (
    # Agents
    ("agents:list", "List Agents", "View agent list", "Agents", 1),
    ("agents:read", "View Agent Details", "View agent configuration", "Agents", 2),
    ("agents:create", "Create Agents", "Create new agents", "Agents", 3),
    ("agents:update", "Update Agents", "Modify agent settings", "Agents", 4),
    ("agents:delete", "Delete Agents", "Remove agents", "Agents", 5),
    ("agents:execute", "Execute Agents", "Run agent workflows", "Agents", 6),
    ("agents:publish", "Publish Agents", "Publish to production", "Agents", 7),

    # Workflows
    ("workflows:list", "List Workflows", "View workflow list", "Workflows", 1),
    ("workflows:read", "View Workflow Details", "View workflow configuration", "Workflows", 2),
    ("workflows:create", "Create Workflows", "Create new workflows", "Workflows", 3),
    ("workflows:update", "Update Workflows", "Modify workflows", "Workflows", 4),
    ("workflows:delete", "Delete Workflows", "Remove workflows", "Workflows", 5),
    ("workflows:execute", "Execute Workflows", "Run workflows", "Workflows", 6),
    ("workflows:schedule", "Schedule Workflows", "Set up scheduled runs", "Workflows", 7),

    # Reports
    ("reports:list", "List Reports", "View report list", "Reports", 1),
    ("reports:read", "View Reports", "View report content", "Reports", 2),
    ("reports:create", "Create Reports", "Create new reports", "Reports", 3),
    ("reports:update", "Update Reports", "Modify reports", "Reports", 4),
    ("reports:delete", "Delete Reports", "Remove reports", "Reports", 5),
    ("reports:export", "Export Reports", "Export report data", "Reports", 6),
    ("reports:share", "Share Reports", "Share with others", "Reports", 7),

    # Dashboards
    ("dashboards:list", "List Dashboards", "View dashboard list", "Dashboards", 1),
    ("dashboards:read", "View Dashboards", "View dashboard content", "Dashboards", 2),
    ("dashboards:create", "Create Dashboards", "Create new dashboards", "Dashboards", 3),
    ("dashboards:update", "Update Dashboards", "Modify dashboards", "Dashboards", 4),
    ("dashboards:delete", "Delete Dashboards", "Remove dashboards", "Dashboards", 5),
    ("dashboards:share", "Share Dashboards", "Share with others", "Dashboards", 6),

    # Data Sources
    ("datasources:list", "List Data Sources", "View data source list", "Data Sources", 1),
    ("datasources:read", "View Data Source Details", "View data source config", "Data Sources", 2),
    ("datasources:create", "Create Data Sources", "Add new data sources", "Data Sources", 3),
    ("datasources:update", "Update Data Sources", "Modify data sources", "Data Sources", 4),
    ("datasources:delete", "Delete Data Sources", "Remove data sources", "Data Sources", 5),
    ("datasources:sync", "Sync Data Sources", "Trigger data sync", "Data Sources", 6),

    # Team
    ("team:list", "List Team Members", "View team member list", "Team", 1),
    ("team:read", "View Team Member Details", "View member information", "Team", 2),
    ("team:invite", "Invite Team Members", "Send invitations", "Team", 3),
    ("team:update", "Update Team Members", "Modify member settings", "Team", 4),
    ("team:remove", "Remove Team Members", "Remove from organization", "Team", 5),
    ("team:roles:assign", "Assign Roles", "Change member roles", "Team", 6),

    # Organization Settings
    ("org:settings:read", "View Org Settings", "View organization settings", "Organization Settings", 1),
    ("org:settings:write", "Manage Org Settings", "Modify organization settings", "Organization Settings", 2),
    ("org:branding:read", "View Branding", "View branding settings", "Organization Settings", 3),
    ("org:branding:write", "Manage Branding", "Modify branding", "Organization Settings", 4),
    ("org:billing:read", "View Billing", "View billing information", "Organization Settings", 5),
    ("org:billing:write", "Manage Billing", "Modify billing settings", "Organization Settings", 6),
    ("org:api-keys:read", "View API Keys", "View API key list", "Organization Settings", 7),
    ("org:api-keys:write", "Manage API Keys", "Create/revoke API keys", "Organization Settings", 8),
    ("org:integrations:read", "View Integrations", "View org integrations", "Organization Settings", 9),
    ("org:integrations:write", "Manage Integrations", "Configure integrations", "Organization Settings", 10),
    ("org:audit:read", "View Audit Logs", "View organization audit logs", "Organization Settings", 11),

    # Audiences
    ("audiences:list", "List Audiences", "View audience list", "Audiences", 1),
    ("audiences:read", "View Audiences", "View audience details", "Audiences", 2),
    ("audiences:create", "Create Audiences", "Create new audiences", "Audiences", 3),
    ("audiences:update", "Update Audiences", "Modify audiences", "Audiences", 4),
    ("audiences:delete", "Delete Audiences", "Remove audiences", "Audiences", 5),

    # Charts
    ("charts:list", "List Charts", "View chart list", "Charts", 1),
    ("charts:read", "View Charts", "View chart details", "Charts", 2),
    ("charts:create", "Create Charts", "Create new charts", "Charts", 3),
    ("charts:update", "Update Charts", "Modify charts", "Charts", 4),
    ("charts:delete", "Delete Charts", "Remove charts", "Charts", 5),

    # Brand Tracking
    ("brand-tracking:list", "List Brand Tracking", "View brand tracking list", "Brand Tracking", 1),
    ("brand-tracking:read", "View Brand Tracking", "View brand tracking details", "Brand Tracking", 2),
    ("brand-tracking:create", "Create Brand Tracking", "Create new brand tracking", "Brand Tracking", 3),
    ("brand-tracking:update", "Update Brand Tracking", "Modify brand tracking", "Brand Tracking", 4),
    ("brand-tracking:delete", "Delete Brand Tracking", "Remove brand tracking", "Brand Tracking", 5),

    # Memory
    ("memory:list", "List Memory", "View memory entries", "Memory", 1),
    ("memory:read", "View Memory", "View memory details", "Memory", 2),
    ("memory:create", "Create Memory", "Create memory entries", "Memory", 3),
    ("memory:update", "Update Memory", "Modify memory entries", "Memory", 4),
    ("memory:delete", "Delete Memory", "Remove memory entries", "Memory", 5),

    # Hierarchy (organization tree)
    ("hierarchy:read", "View Hierarchy", "View organization hierarchy", "Hierarchy", 1),
    ("hierarchy:write", "Manage Hierarchy", "Create/edit child orgs", "Hierarchy", 2),
    ("hierarchy:relationships:read", "View Relationships", "View org relationships", "Hierarchy", 3),
    ("hierarchy:relationships:write", "Manage Relationships", "Create/edit relationships", "Hierarchy", 4),
    ("hierarchy:sharing:read", "View Shared Resources", "View shared resources", "Hierarchy", 5),
    ("hierarchy:sharing:write", "Manage Sharing", "Share resources", "Hierarchy", 6),

    # Admin access (full access to org)
    ("admin:*", "Organization Admin", "Full organization access", "Organization Settings", 999),
)


def _build(
    scope: RoleScope,
    entries: Iterable[tuple[str, str, str, str, int]],
) -> Mapping[str, Permission]:
    table: dict[str, Permission] = {}
    for key, display_name, description, category, sort_order in entries:
        if key in table:
            raise ValueError(f"Duplicate permission key in {scope.value} registry: {key}")
        table[key] = Permission(
            key=key,
            scope=scope,
            display_name=display_name,
            description=description,
            category=category,
            sort_order=sort_order,
        )
    return MappingProxyType(table)


PLATFORM_PERMISSIONS = _build(RoleScope.PLATFORM, _PLATFORM_ENTRIES)
TENANT_PERMISSIONS = _build(RoleScope.TENANT, _TENANT_ENTRIES)

_REGISTRIES: Mapping[RoleScope, Mapping[str, Permission]] = MappingProxyType({
    RoleScope.PLATFORM: PLATFORM_PERMISSIONS,
    RoleScope.TENANT: TENANT_PERMISSIONS,
})

_CATEGORIES: Mapping[RoleScope, tuple[str, ...]] = MappingProxyType({
    RoleScope.PLATFORM: PLATFORM_CATEGORIES,
    RoleScope.TENANT: TENANT_CATEGORIES,
})


def get_registry(scope: RoleScope | str) -> Mapping[str, Permission]:
    """Return the read-only key -> Permission mapping for a scope."""
    return _REGISTRIES[RoleScope(scope)]


def get_permission_categories(scope: RoleScope | str) -> list[str]:
    """Return the display categories for a scope, in UI order."""
    return list(_CATEGORIES[RoleScope(scope)])


def list_permissions(scope: RoleScope | str) -> list[Permission]:
    """List every permission of a scope.

    Ordered by category (catalog order), then sort order, then key.
    """
    scope = RoleScope(scope)
    category_rank = {name: i for i, name in enumerate(_CATEGORIES[scope])}
    return sorted(
        _REGISTRIES[scope].values(),
        key=lambda p: (category_rank.get(p.category, len(category_rank)), p.sort_order, p.key),
    )


def group_by_category(scope: RoleScope | str) -> dict[str, list[Permission]]:
    """Group a scope's permissions by category, keeping list order."""
    grouped: dict[str, list[Permission]] = {}
    for permission in list_permissions(scope):
        grouped.setdefault(permission.category, []).append(permission)
    return grouped


def get_permission(scope: RoleScope | str, key: str) -> Permission | None:
    """Look up a single permission."""
    return _REGISTRIES[RoleScope(scope)].get(key)


def is_valid_key(scope: RoleScope | str, key: str) -> bool:
    """Check whether a key exists in the scope's registry."""
    return key in _REGISTRIES[RoleScope(scope)]


def wildcard_for(scope: RoleScope | str) -> str:
    """Return the universal permission of a scope."""
    return WILDCARDS[RoleScope(scope)]


def filter_valid_permissions(permissions: Iterable[str], scope: RoleScope | str) -> list[str]:
    """Drop keys that are not in the scope's registry.

    Unknown keys are never an error: they are removed and reported with a
    warning. Order is preserved and duplicates are collapsed.

    Args:
        permissions: Candidate permission keys
        scope: Registry to validate against

    Returns:
        The valid keys
    """
    registry = _REGISTRIES[RoleScope(scope)]
    valid: list[str] = []
    invalid: list[str] = []
    for key in permissions:
        if key in registry:
            if key not in valid:
                valid.append(key)
        else:
            invalid.append(key)

    if invalid:
        logger.warning(
            "Invalid permissions ignored",
            context={"scope": RoleScope(scope).value, "invalid": invalid},
        )
    return valid
